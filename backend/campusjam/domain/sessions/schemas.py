"""Pydantic schemas for jam sessions."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from campusjam.domain.common.schemas import CamelModel
from campusjam.domain.sessions.models import Session, SessionStatus, SkillLevel


class CreateSessionRequest(CamelModel):
	title: str
	start_time: datetime
	description: Optional[str] = None
	end_time: Optional[datetime] = None
	location: Optional[str] = None
	genre: Optional[str] = None
	skill_level: SkillLevel = SkillLevel.ANY
	instruments_needed: List[str] = Field(default_factory=list)
	spotify_playlist_url: Optional[str] = None
	is_public: bool = True


class UpdateSessionRequest(CamelModel):
	title: Optional[str] = None
	description: Optional[str] = None
	start_time: Optional[datetime] = None
	location: Optional[str] = None
	genre: Optional[str] = None
	skill_level: Optional[SkillLevel] = None
	instruments_needed: Optional[List[str]] = None
	spotify_playlist_url: Optional[str] = None


class ParticipantRequest(CamelModel):
	user_id: Optional[str] = None


class JoinSessionRequest(CamelModel):
	session_id: Optional[str] = None


class InviteRequest(CamelModel):
	user_id: Optional[str] = None


class VisibilityRequest(CamelModel):
	is_public: bool


class VisibilityResponse(CamelModel):
	id: str
	is_public: bool


class SessionResponse(CamelModel):
	id: str
	host: str
	title: str
	description: Optional[str] = None
	is_public: bool
	status: SessionStatus
	start_time: datetime
	end_time: Optional[datetime] = None
	location: Optional[str] = None
	genre: Optional[str] = None
	skill_level: SkillLevel
	instruments_needed: List[str]
	spotify_playlist_url: Optional[str] = None
	attendees: List[str]
	invited_users: List[str]
	created_at: datetime
	updated_at: datetime

	@classmethod
	def from_model(cls, session: Session) -> "SessionResponse":
		return cls(
			id=session.id,
			host=session.host_id,
			title=session.title,
			description=session.description,
			is_public=session.is_public,
			status=session.status,
			start_time=session.start_time,
			end_time=session.end_time,
			location=session.location,
			genre=session.genre,
			skill_level=session.skill_level,
			instruments_needed=list(session.instruments_needed),
			spotify_playlist_url=session.spotify_playlist_url,
			attendees=list(session.attendees),
			invited_users=list(session.invited_users),
			created_at=session.created_at,
			updated_at=session.updated_at,
		)
