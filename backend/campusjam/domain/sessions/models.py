"""Domain models for jam sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class SessionStatus(str, Enum):
	"""Lifecycle states of a session."""

	SCHEDULED = "Scheduled"
	ONGOING = "Ongoing"
	FINISHED = "Finished"
	CANCELLED = "Cancelled"


class SkillLevel(str, Enum):
	ANY = "Any"
	BEGINNER = "Beginner"
	INTERMEDIATE = "Intermediate"
	ADVANCED = "Advanced"


# Allowed source states for each transition.
START_FROM = (SessionStatus.SCHEDULED,)
COMPLETE_FROM = (SessionStatus.SCHEDULED, SessionStatus.ONGOING)
CANCEL_FROM = (SessionStatus.SCHEDULED, SessionStatus.ONGOING)

MAX_DESCRIPTION_LENGTH = 1000
MAX_TITLE_LENGTH = 200


@dataclass(slots=True)
class Session:
	"""A scheduled jam session with its membership sets."""

	id: str
	host_id: str
	title: str
	description: Optional[str]
	is_public: bool
	status: SessionStatus
	start_time: datetime
	end_time: Optional[datetime]
	location: Optional[str]
	genre: Optional[str]
	skill_level: SkillLevel
	created_at: datetime
	updated_at: datetime
	instruments_needed: List[str] = field(default_factory=list)
	spotify_playlist_url: Optional[str] = None
	attendees: List[str] = field(default_factory=list)
	invited_users: List[str] = field(default_factory=list)

	@classmethod
	def from_record(cls, record, *, attendees=(), invited_users=()) -> "Session":
		return cls(
			id=str(record["id"]),
			host_id=str(record["host_id"]),
			title=record["title"],
			description=record["description"],
			is_public=bool(record["is_public"]),
			status=SessionStatus(record["status"]),
			start_time=record["start_time"],
			end_time=record["end_time"],
			location=record["location"],
			genre=record["genre"],
			skill_level=SkillLevel(record["skill_level"]),
			created_at=record["created_at"],
			updated_at=record["updated_at"],
			instruments_needed=list(record["instruments_needed"] or []),
			spotify_playlist_url=record["spotify_playlist_url"],
			attendees=[str(uid) for uid in attendees],
			invited_users=[str(uid) for uid in invited_users],
		)

	def is_host(self, user_id: str) -> bool:
		return self.host_id == str(user_id)
