"""Pydantic schemas for direct and session messages."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from campusjam.domain.chat.models import DirectMessage, SessionMessage
from campusjam.domain.common.schemas import CamelModel, PublicUser


class SendDirectMessageRequest(CamelModel):
	recipient_id: Optional[str] = None
	content: Optional[str] = None


class SendSessionMessageRequest(CamelModel):
	content: Optional[str] = None


class DirectMessageResponse(CamelModel):
	id: str
	sender: PublicUser
	recipient: PublicUser
	content: str
	read: bool
	created_at: datetime

	@classmethod
	def from_model(cls, message: DirectMessage, sender: PublicUser, recipient: PublicUser) -> "DirectMessageResponse":
		return cls(
			id=message.id,
			sender=sender,
			recipient=recipient,
			content=message.content,
			read=message.read,
			created_at=message.created_at,
		)


class SessionMessageResponse(CamelModel):
	id: str
	session: str
	sender: PublicUser
	content: str
	created_at: datetime

	@classmethod
	def from_model(cls, message: SessionMessage, sender: PublicUser) -> "SessionMessageResponse":
		return cls(
			id=message.id,
			session=message.session_id,
			sender=sender,
			content=message.content,
			created_at=message.created_at,
		)


class ConversationUser(CamelModel):
	id: str
	name: str
	email: str


class LastMessage(CamelModel):
	id: str
	content: str
	created_at: datetime
	read: bool
	sender: str


class ConversationRow(CamelModel):
	other_user: ConversationUser
	last_message: LastMessage


class MarkReadResponse(CamelModel):
	updated: int
