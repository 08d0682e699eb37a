"""Session persistence backed by asyncpg with an in-memory fallback."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import uuid4

import asyncpg

from campusjam.domain.identity.exceptions import UserNotFound
from campusjam.domain.sessions.exceptions import (
	AlreadyAttending,
	AlreadyInvited,
	InvalidTransition,
	NotAttendee,
	SessionNotFound,
)
from campusjam.domain.sessions.models import Session, SessionStatus
from campusjam.infra.memory import MemoryDatabase, memory_db
from campusjam.infra.postgres import get_pool_or_none

UPDATABLE_COLUMNS = (
	"title",
	"description",
	"start_time",
	"location",
	"genre",
	"skill_level",
	"instruments_needed",
	"spotify_playlist_url",
)


def _storable(value: Any) -> Any:
	return value.value if isinstance(value, Enum) else value


class _InMemorySessionStore:
	def __init__(self, db: MemoryDatabase) -> None:
		self._db = db

	def _members(self, edges: Dict, session_id: str) -> List[str]:
		items = [(created, key[1]) for key, created in edges.items() if key[0] == session_id]
		return [uid for _, uid in sorted(items, key=lambda item: item[0])]

	def _build(self, row: dict) -> Session:
		return Session.from_record(
			row,
			attendees=self._members(self._db.attendees, row["id"]),
			invited_users=self._members(self._db.invites, row["id"]),
		)

	def _require(self, session_id: str) -> dict:
		row = self._db.sessions.get(session_id)
		if row is None:
			raise SessionNotFound()
		return row

	async def create(self, row: dict) -> Session:
		async with self._db.lock:
			if row["host_id"] not in self._db.users:
				raise UserNotFound()
			self._db.sessions[row["id"]] = row
			return self._build(row)

	async def get(self, session_id: str) -> Optional[Session]:
		row = self._db.sessions.get(session_id)
		return self._build(row) if row else None

	async def list_public(
		self,
		statuses: Optional[Sequence[SessionStatus]],
		starts_after: Optional[datetime],
		newest_first: bool,
	) -> List[Session]:
		wanted = {s.value for s in statuses} if statuses else None
		rows = [
			row
			for row in self._db.sessions.values()
			if row["is_public"]
			and (wanted is None or row["status"] in wanted)
			and (starts_after is None or row["start_time"] > starts_after)
		]
		rows.sort(key=lambda r: r["start_time"], reverse=newest_first)
		return [self._build(row) for row in rows]

	async def update(self, session_id: str, changes: Dict[str, Any]) -> Optional[Session]:
		async with self._db.lock:
			row = self._db.sessions.get(session_id)
			if row is None:
				return None
			row.update(changes)
			row["updated_at"] = datetime.now(timezone.utc)
			return self._build(row)

	async def delete(self, session_id: str) -> bool:
		async with self._db.lock:
			return self._db.purge_session(session_id)

	async def add_attendee(self, session_id: str, user_id: str) -> List[str]:
		async with self._db.lock:
			self._require(session_id)
			if user_id not in self._db.users:
				raise UserNotFound()
			if (session_id, user_id) in self._db.attendees:
				raise AlreadyAttending()
			self._db.attendees[(session_id, user_id)] = datetime.now(timezone.utc)
			return self._members(self._db.attendees, session_id)

	async def remove_attendee(self, session_id: str, user_id: str) -> List[str]:
		async with self._db.lock:
			self._require(session_id)
			if self._db.attendees.pop((session_id, user_id), None) is None:
				raise NotAttendee()
			return self._members(self._db.attendees, session_id)

	async def invite(self, session_id: str, user_id: str) -> Session:
		async with self._db.lock:
			row = self._require(session_id)
			if user_id not in self._db.users:
				raise UserNotFound()
			if (session_id, user_id) in self._db.invites:
				raise AlreadyInvited()
			self._db.invites[(session_id, user_id)] = datetime.now(timezone.utc)
			return self._build(row)

	async def transition(
		self,
		session_id: str,
		allowed: Iterable[SessionStatus],
		target: SessionStatus,
		*,
		end_time: Optional[datetime],
	) -> Session:
		async with self._db.lock:
			row = self._require(session_id)
			if row["status"] not in {s.value for s in allowed}:
				raise InvalidTransition(row["status"], target.value)
			now = datetime.now(timezone.utc)
			row["status"] = target.value
			if end_time is not None:
				row["end_time"] = end_time
			row["updated_at"] = now
			return self._build(row)


class SessionRepository:
	"""Sessions plus their attendee and invite edge tables."""

	def __init__(self, memory: MemoryDatabase | None = None) -> None:
		self._memory = _InMemorySessionStore(memory or memory_db)

	async def _load(self, conn: asyncpg.Connection, row: asyncpg.Record) -> Session:
		attendees = await conn.fetch(
			"SELECT user_id FROM session_attendees WHERE session_id = $1 ORDER BY joined_at ASC",
			row["id"],
		)
		invites = await conn.fetch(
			"SELECT user_id FROM session_invites WHERE session_id = $1 ORDER BY invited_at ASC",
			row["id"],
		)
		return Session.from_record(
			row,
			attendees=[r["user_id"] for r in attendees],
			invited_users=[r["user_id"] for r in invites],
		)

	async def create(self, host_id: str, fields: Dict[str, Any]) -> Session:
		now = datetime.now(timezone.utc)
		row = {
			"id": str(uuid4()),
			"host_id": host_id,
			"title": fields["title"],
			"description": fields.get("description"),
			"is_public": fields.get("is_public", True),
			"status": SessionStatus.SCHEDULED.value,
			"start_time": fields["start_time"],
			"end_time": fields.get("end_time"),
			"location": fields.get("location"),
			"genre": fields.get("genre"),
			"skill_level": _storable(fields["skill_level"]),
			"instruments_needed": list(fields.get("instruments_needed") or []),
			"spotify_playlist_url": fields.get("spotify_playlist_url"),
			"created_at": now,
			"updated_at": now,
		}
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.create(row)
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO sessions (
						id, host_id, title, description, is_public, status, start_time, end_time,
						location, genre, skill_level, instruments_needed, spotify_playlist_url,
						created_at, updated_at
					)
					VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
					RETURNING *
					""",
					*row.values(),
				)
			except asyncpg.ForeignKeyViolationError:
				raise UserNotFound() from None
			return await self._load(conn, record)

	async def get(self, session_id: str) -> Optional[Session]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.get(session_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow("SELECT * FROM sessions WHERE id = $1", session_id)
			if row is None:
				return None
			return await self._load(conn, row)

	async def list_public(
		self,
		*,
		statuses: Optional[Sequence[SessionStatus]] = None,
		starts_after: Optional[datetime] = None,
		newest_first: bool = False,
	) -> List[Session]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.list_public(statuses, starts_after, newest_first)
		direction = "DESC" if newest_first else "ASC"
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT * FROM sessions
				WHERE is_public = TRUE
				  AND ($1::text[] IS NULL OR status = ANY($1::text[]))
				  AND ($2::timestamptz IS NULL OR start_time > $2)
				ORDER BY start_time {direction}
				""",
				[s.value for s in statuses] if statuses else None,
				starts_after,
			)
			return [await self._load(conn, row) for row in rows]

	async def update(self, session_id: str, changes: Dict[str, Any]) -> Optional[Session]:
		changes = {key: _storable(value) for key, value in changes.items() if key in UPDATABLE_COLUMNS}
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.update(session_id, changes)
		assignments = [f"{column} = ${index}" for index, column in enumerate(changes, start=2)]
		assignments.append("updated_at = NOW()")
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"UPDATE sessions SET {', '.join(assignments)} WHERE id = $1 RETURNING *",
				session_id,
				*changes.values(),
			)
			if row is None:
				return None
			return await self._load(conn, row)

	async def set_visibility(self, session_id: str, is_public: bool) -> Optional[Session]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.update(session_id, {"is_public": is_public})
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"UPDATE sessions SET is_public = $2, updated_at = NOW() WHERE id = $1 RETURNING *",
				session_id,
				is_public,
			)
			if row is None:
				return None
			return await self._load(conn, row)

	async def delete(self, session_id: str) -> bool:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.delete(session_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow("DELETE FROM sessions WHERE id = $1 RETURNING id", session_id)
		return row is not None

	async def add_attendee(self, session_id: str, user_id: str) -> List[str]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.add_attendee(session_id, user_id)
		async with pool.acquire() as conn:
			async with conn.transaction():
				if await conn.fetchrow("SELECT id FROM sessions WHERE id = $1 FOR SHARE", session_id) is None:
					raise SessionNotFound()
				try:
					row = await conn.fetchrow(
						"""
						INSERT INTO session_attendees (session_id, user_id)
						VALUES ($1, $2)
						ON CONFLICT (session_id, user_id) DO NOTHING
						RETURNING user_id
						""",
						session_id,
						user_id,
					)
				except asyncpg.ForeignKeyViolationError:
					raise UserNotFound() from None
				if row is None:
					raise AlreadyAttending()
				return await self._attendees(conn, session_id)

	async def remove_attendee(self, session_id: str, user_id: str) -> List[str]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.remove_attendee(session_id, user_id)
		async with pool.acquire() as conn:
			async with conn.transaction():
				if await conn.fetchrow("SELECT id FROM sessions WHERE id = $1 FOR SHARE", session_id) is None:
					raise SessionNotFound()
				row = await conn.fetchrow(
					"DELETE FROM session_attendees WHERE session_id = $1 AND user_id = $2 RETURNING user_id",
					session_id,
					user_id,
				)
				if row is None:
					raise NotAttendee()
				return await self._attendees(conn, session_id)

	async def _attendees(self, conn: asyncpg.Connection, session_id: str) -> List[str]:
		rows = await conn.fetch(
			"SELECT user_id FROM session_attendees WHERE session_id = $1 ORDER BY joined_at ASC",
			session_id,
		)
		return [str(r["user_id"]) for r in rows]

	async def invite(self, session_id: str, user_id: str) -> Session:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.invite(session_id, user_id)
		async with pool.acquire() as conn:
			async with conn.transaction():
				session_row = await conn.fetchrow("SELECT * FROM sessions WHERE id = $1 FOR SHARE", session_id)
				if session_row is None:
					raise SessionNotFound()
				try:
					row = await conn.fetchrow(
						"""
						INSERT INTO session_invites (session_id, user_id)
						VALUES ($1, $2)
						ON CONFLICT (session_id, user_id) DO NOTHING
						RETURNING user_id
						""",
						session_id,
						user_id,
					)
				except asyncpg.ForeignKeyViolationError:
					raise UserNotFound() from None
				if row is None:
					raise AlreadyInvited()
				return await self._load(conn, session_row)

	async def transition(
		self,
		session_id: str,
		allowed: Iterable[SessionStatus],
		target: SessionStatus,
		*,
		end_time: Optional[datetime] = None,
	) -> Session:
		"""Compare-and-set the status so concurrent transitions cannot both win."""
		allowed = tuple(allowed)
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.transition(session_id, allowed, target, end_time=end_time)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				UPDATE sessions
				SET status = $2, end_time = COALESCE($4, end_time), updated_at = NOW()
				WHERE id = $1 AND status = ANY($3::text[])
				RETURNING *
				""",
				session_id,
				target.value,
				[s.value for s in allowed],
				end_time,
			)
			if row is None:
				current = await conn.fetchval("SELECT status FROM sessions WHERE id = $1", session_id)
				if current is None:
					raise SessionNotFound()
				raise InvalidTransition(current, target.value)
			return await self._load(conn, row)
