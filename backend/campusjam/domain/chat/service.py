"""Direct and session messaging with realtime delivery."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List

import asyncpg
import ulid

from campusjam.domain.chat import sockets
from campusjam.domain.chat.models import DirectMessage, SessionMessage
from campusjam.domain.chat.schemas import (
	ConversationRow,
	ConversationUser,
	DirectMessageResponse,
	LastMessage,
	SessionMessageResponse,
)
from campusjam.domain.common.errors import InvalidArgument
from campusjam.domain.common.schemas import PublicUser
from campusjam.domain.common.side_effects import best_effort
from campusjam.domain.common.validation import MAX_MESSAGE_LENGTH, clean_text, parse_id
from campusjam.domain.identity.exceptions import UserNotFound
from campusjam.domain.identity.repo import UserRepository
from campusjam.domain.sessions.exceptions import SessionNotFound
from campusjam.domain.sessions.repo import SessionRepository
from campusjam.infra.auth import AuthenticatedUser
from campusjam.infra.memory import MemoryDatabase, memory_db
from campusjam.infra.postgres import get_pool_or_none
from campusjam.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_DM_COLUMNS = "id, sender_id, recipient_id, content, read, created_at, seq"
_SESSION_MSG_COLUMNS = "id, session_id, sender_id, content, created_at, seq"


class _InMemoryStore:
	"""Fallback store used in tests when Postgres is unavailable."""

	def __init__(self, db: MemoryDatabase) -> None:
		self._db = db

	async def create_direct(self, sender_id: str, recipient_id: str, content: str, created_at: datetime) -> DirectMessage:
		async with self._db.lock:
			if sender_id not in self._db.users or recipient_id not in self._db.users:
				raise UserNotFound()
			row = {
				"id": str(ulid.new()),
				"sender_id": sender_id,
				"recipient_id": recipient_id,
				"content": content,
				"read": False,
				"created_at": created_at,
				"seq": self._db.next_seq(),
			}
			self._db.direct_messages.append(row)
			return DirectMessage.from_record(row)

	async def list_between(self, user_a: str, user_b: str) -> List[DirectMessage]:
		pair = {user_a, user_b}
		messages = [
			DirectMessage.from_record(row)
			for row in self._db.direct_messages
			if {row["sender_id"], row["recipient_id"]} == pair
		]
		messages.sort(key=DirectMessage.order_key)
		return messages

	async def latest_per_counterpart(self, user_id: str) -> List[DirectMessage]:
		latest: Dict[str, DirectMessage] = {}
		for row in self._db.direct_messages:
			if user_id not in (row["sender_id"], row["recipient_id"]):
				continue
			message = DirectMessage.from_record(row)
			other = message.counterpart(user_id)
			current = latest.get(other)
			if current is None or message.order_key() > current.order_key():
				latest[other] = message
		return sorted(latest.values(), key=DirectMessage.order_key, reverse=True)

	async def mark_read(self, user_id: str, sender_id: str) -> int:
		async with self._db.lock:
			updated = 0
			for row in self._db.direct_messages:
				if row["sender_id"] == sender_id and row["recipient_id"] == user_id and not row["read"]:
					row["read"] = True
					updated += 1
			return updated

	async def create_session_message(
		self, session_id: str, sender_id: str, content: str, created_at: datetime
	) -> SessionMessage:
		async with self._db.lock:
			if session_id not in self._db.sessions:
				raise SessionNotFound()
			row = {
				"id": str(ulid.new()),
				"session_id": session_id,
				"sender_id": sender_id,
				"content": content,
				"created_at": created_at,
				"seq": self._db.next_seq(),
			}
			self._db.session_messages.append(row)
			return SessionMessage.from_record(row)

	async def list_session_messages(self, session_id: str) -> List[SessionMessage]:
		messages = [
			SessionMessage.from_record(row)
			for row in self._db.session_messages
			if row["session_id"] == session_id
		]
		messages.sort(key=lambda m: (m.created_at, m.seq))
		return messages


class ChatRepository:
	"""Repository backed by asyncpg with an in-memory fallback."""

	def __init__(self, memory: MemoryDatabase | None = None) -> None:
		self._memory = _InMemoryStore(memory or memory_db)

	async def create_direct(self, sender_id: str, recipient_id: str, content: str, created_at: datetime) -> DirectMessage:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.create_direct(sender_id, recipient_id, content, created_at)
		async with pool.acquire() as conn:
			try:
				row = await conn.fetchrow(
					f"""
					INSERT INTO direct_messages (id, sender_id, recipient_id, content, created_at)
					VALUES ($1, $2, $3, $4, $5)
					RETURNING {_DM_COLUMNS}
					""",
					str(ulid.new()),
					sender_id,
					recipient_id,
					content,
					created_at,
				)
			except asyncpg.ForeignKeyViolationError:
				raise UserNotFound() from None
		return DirectMessage.from_record(row)

	async def list_between(self, user_a: str, user_b: str) -> List[DirectMessage]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.list_between(user_a, user_b)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_DM_COLUMNS}
				FROM direct_messages
				WHERE (sender_id = $1 AND recipient_id = $2)
				   OR (sender_id = $2 AND recipient_id = $1)
				ORDER BY created_at ASC, seq ASC
				""",
				user_a,
				user_b,
			)
		return [DirectMessage.from_record(row) for row in rows]

	async def latest_per_counterpart(self, user_id: str) -> List[DirectMessage]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.latest_per_counterpart(user_id)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_DM_COLUMNS}
				FROM (
					SELECT DISTINCT ON (CASE WHEN sender_id = $1 THEN recipient_id ELSE sender_id END)
						{_DM_COLUMNS}
					FROM direct_messages
					WHERE sender_id = $1 OR recipient_id = $1
					ORDER BY CASE WHEN sender_id = $1 THEN recipient_id ELSE sender_id END,
						created_at DESC, seq DESC
				) latest
				ORDER BY created_at DESC, seq DESC
				""",
				user_id,
			)
		return [DirectMessage.from_record(row) for row in rows]

	async def mark_read(self, user_id: str, sender_id: str) -> int:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.mark_read(user_id, sender_id)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				UPDATE direct_messages SET read = TRUE
				WHERE sender_id = $1 AND recipient_id = $2 AND read = FALSE
				RETURNING id
				""",
				sender_id,
				user_id,
			)
		return len(rows)

	async def create_session_message(
		self, session_id: str, sender_id: str, content: str, created_at: datetime
	) -> SessionMessage:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.create_session_message(session_id, sender_id, content, created_at)
		async with pool.acquire() as conn:
			try:
				row = await conn.fetchrow(
					f"""
					INSERT INTO session_messages (id, session_id, sender_id, content, created_at)
					VALUES ($1, $2, $3, $4, $5)
					RETURNING {_SESSION_MSG_COLUMNS}
					""",
					str(ulid.new()),
					session_id,
					sender_id,
					content,
					created_at,
				)
			except asyncpg.ForeignKeyViolationError:
				raise SessionNotFound() from None
		return SessionMessage.from_record(row)

	async def list_session_messages(self, session_id: str) -> List[SessionMessage]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.list_session_messages(session_id)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_SESSION_MSG_COLUMNS}
				FROM session_messages
				WHERE session_id = $1
				ORDER BY created_at ASC, seq ASC
				""",
				session_id,
			)
		return [SessionMessage.from_record(row) for row in rows]


def _placeholder(user_id: str) -> PublicUser:
	return PublicUser(id=user_id, name="", email="")


class ChatService:
	def __init__(
		self,
		repository: ChatRepository | None = None,
		users: UserRepository | None = None,
		sessions: SessionRepository | None = None,
	) -> None:
		self._repo = repository or ChatRepository()
		self._users = users or UserRepository()
		self._sessions = sessions or SessionRepository()

	async def send_direct_message(
		self, auth_user: AuthenticatedUser, recipient_id: object, content: object
	) -> DirectMessageResponse:
		sender_id = parse_id(auth_user.id, "user_id")
		target_id = parse_id(recipient_id, "recipient_id")
		if sender_id == target_id:
			raise InvalidArgument("self_message", "You cannot message yourself.")
		text = clean_text(content, field="content", max_length=MAX_MESSAGE_LENGTH)
		profiles = await self._users.public_profiles([sender_id, target_id])
		if target_id not in profiles or sender_id not in profiles:
			raise UserNotFound()
		message = await self._repo.create_direct(sender_id, target_id, text, datetime.now(timezone.utc))
		obs_metrics.inc_dm_send()
		response = DirectMessageResponse.from_model(message, profiles[sender_id], profiles[target_id])
		payload = response.model_dump(mode="json", by_alias=True)
		await best_effort(
			sockets.EVENT_RECEIVE_MESSAGE,
			sockets.emit_receive_message(target_id, payload),
			message_id=message.id,
		)
		await best_effort(
			sockets.EVENT_MESSAGE_SENT,
			sockets.emit_message_sent(sender_id, payload),
			message_id=message.id,
		)
		return response

	async def get_conversations(self, auth_user: AuthenticatedUser) -> List[ConversationRow]:
		user_id = parse_id(auth_user.id, "user_id")
		latest = await self._repo.latest_per_counterpart(user_id)
		profiles = await self._users.public_profiles(m.counterpart(user_id) for m in latest)
		rows: List[ConversationRow] = []
		for message in latest:
			other = profiles.get(message.counterpart(user_id))
			if other is None:
				continue
			rows.append(
				ConversationRow(
					other_user=ConversationUser(id=other.id, name=other.name, email=other.email),
					last_message=LastMessage(
						id=message.id,
						content=message.content,
						created_at=message.created_at,
						read=message.read,
						sender=message.sender_id,
					),
				)
			)
		return rows

	async def get_direct_messages(self, auth_user: AuthenticatedUser, other_user_id: object) -> List[DirectMessageResponse]:
		user_id = parse_id(auth_user.id, "user_id")
		other_id = parse_id(other_user_id, "user_id")
		messages = await self._repo.list_between(user_id, other_id)
		profiles = await self._users.public_profiles([user_id, other_id])
		return [
			DirectMessageResponse.from_model(
				message,
				profiles.get(message.sender_id) or _placeholder(message.sender_id),
				profiles.get(message.recipient_id) or _placeholder(message.recipient_id),
			)
			for message in messages
		]

	async def mark_as_read(self, auth_user: AuthenticatedUser, sender_id: object) -> int:
		user_id = parse_id(auth_user.id, "user_id")
		other_id = parse_id(sender_id, "sender_id")
		updated = await self._repo.mark_read(user_id, other_id)
		obs_metrics.inc_dm_read(updated)
		return updated

	async def send_session_message(
		self, auth_user: AuthenticatedUser, session_id: object, content: object
	) -> SessionMessageResponse:
		sender_id = parse_id(auth_user.id, "user_id")
		sid = parse_id(session_id, "session_id")
		text = clean_text(content, field="content", max_length=MAX_MESSAGE_LENGTH)
		session = await self._sessions.get(sid)
		if session is None:
			raise SessionNotFound()
		profiles = await self._users.public_profiles([sender_id])
		if sender_id not in profiles:
			raise UserNotFound()
		message = await self._repo.create_session_message(sid, sender_id, text, datetime.now(timezone.utc))
		obs_metrics.inc_session_message()
		response = SessionMessageResponse.from_model(message, profiles[sender_id])
		payload = response.model_dump(mode="json", by_alias=True)
		recipients = {session.host_id, *session.attendees}
		recipients.discard(sender_id)
		for recipient_id in sorted(recipients):
			await best_effort(
				sockets.EVENT_SESSION_MESSAGE,
				sockets.emit_session_message(recipient_id, payload),
				message_id=message.id,
			)
		return response

	async def get_session_messages(self, session_id: object) -> List[SessionMessageResponse]:
		sid = parse_id(session_id, "session_id")
		if await self._sessions.get(sid) is None:
			raise SessionNotFound()
		messages = await self._repo.list_session_messages(sid)
		profiles = await self._users.public_profiles(m.sender_id for m in messages)
		return [
			SessionMessageResponse.from_model(message, profiles.get(message.sender_id) or _placeholder(message.sender_id))
			for message in messages
		]


_SERVICE = ChatService()


async def send_direct_message(auth_user: AuthenticatedUser, recipient_id: object, content: object) -> DirectMessageResponse:
	return await _SERVICE.send_direct_message(auth_user, recipient_id, content)


async def get_conversations(auth_user: AuthenticatedUser) -> List[ConversationRow]:
	return await _SERVICE.get_conversations(auth_user)


async def get_direct_messages(auth_user: AuthenticatedUser, other_user_id: object) -> List[DirectMessageResponse]:
	return await _SERVICE.get_direct_messages(auth_user, other_user_id)


async def mark_as_read(auth_user: AuthenticatedUser, sender_id: object) -> int:
	return await _SERVICE.mark_as_read(auth_user, sender_id)


async def send_session_message(auth_user: AuthenticatedUser, session_id: object, content: object) -> SessionMessageResponse:
	return await _SERVICE.send_session_message(auth_user, session_id, content)


async def get_session_messages(session_id: object) -> List[SessionMessageResponse]:
	return await _SERVICE.get_session_messages(session_id)
