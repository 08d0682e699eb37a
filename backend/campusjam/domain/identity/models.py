"""Domain models for user accounts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional


@dataclass(slots=True)
class User:
	"""A registered account. ``password_hash`` never leaves the domain layer."""

	id: str
	name: str
	email: str
	password_hash: str
	date_of_birth: date
	created_at: datetime
	updated_at: datetime
	campus: Optional[str] = None
	avatar_url: Optional[str] = None

	@classmethod
	def from_record(cls, record) -> "User":
		return cls(
			id=str(record["id"]),
			name=record["name"],
			email=record["email"],
			password_hash=record["password_hash"],
			date_of_birth=record["date_of_birth"],
			created_at=record["created_at"],
			updated_at=record["updated_at"],
			campus=record["campus"],
			avatar_url=record["avatar_url"],
		)


@dataclass(slots=True)
class UserRelations:
	"""Projections of the edge tables for one user, oldest edge first."""

	following: List[str] = field(default_factory=list)
	followers: List[str] = field(default_factory=list)
	blocked: List[str] = field(default_factory=list)
	joined_sessions: List[str] = field(default_factory=list)
