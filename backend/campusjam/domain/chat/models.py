"""Domain models for direct and session messages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Tuple


@dataclass(slots=True)
class DirectMessage:
	id: str
	sender_id: str
	recipient_id: str
	content: str
	read: bool
	created_at: datetime
	seq: int

	@classmethod
	def from_record(cls, record) -> "DirectMessage":
		return cls(
			id=str(record["id"]),
			sender_id=str(record["sender_id"]),
			recipient_id=str(record["recipient_id"]),
			content=record["content"],
			read=bool(record["read"]),
			created_at=record["created_at"],
			seq=int(record["seq"]),
		)

	def counterpart(self, user_id: str) -> str:
		"""The participant other than ``user_id``."""
		return self.recipient_id if self.sender_id == str(user_id) else self.sender_id

	def order_key(self) -> Tuple[datetime, int]:
		return (self.created_at, self.seq)


@dataclass(slots=True)
class SessionMessage:
	id: str
	session_id: str
	sender_id: str
	content: str
	created_at: datetime
	seq: int

	@classmethod
	def from_record(cls, record) -> "SessionMessage":
		return cls(
			id=str(record["id"]),
			session_id=str(record["session_id"]),
			sender_id=str(record["sender_id"]),
			content=record["content"],
			created_at=record["created_at"],
			seq=int(record["seq"]),
		)
