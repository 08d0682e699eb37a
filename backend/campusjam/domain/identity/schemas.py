"""Pydantic schemas for user accounts."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from campusjam.domain.common.schemas import CamelModel
from campusjam.domain.identity.models import User, UserRelations


class RegisterRequest(CamelModel):
	name: str
	email: str
	password: str
	date_of_birth: date
	campus: Optional[str] = None


class UpdateUserRequest(CamelModel):
	name: Optional[str] = None
	email: Optional[str] = None


class Connections(CamelModel):
	following: List[str] = Field(default_factory=list)
	followers: List[str] = Field(default_factory=list)


class UserResponse(CamelModel):
	id: str
	name: str
	email: str
	date_of_birth: date
	campus: Optional[str] = None
	avatar_url: Optional[str] = None
	connections: Connections
	blocked_users: List[str]
	joined_sessions: List[str]
	created_at: datetime
	updated_at: datetime

	@classmethod
	def from_model(cls, user: User, relations: UserRelations) -> "UserResponse":
		return cls(
			id=user.id,
			name=user.name,
			email=user.email,
			date_of_birth=user.date_of_birth,
			campus=user.campus,
			avatar_url=user.avatar_url,
			connections=Connections(following=list(relations.following), followers=list(relations.followers)),
			blocked_users=list(relations.blocked),
			joined_sessions=list(relations.joined_sessions),
			created_at=user.created_at,
			updated_at=user.updated_at,
		)
