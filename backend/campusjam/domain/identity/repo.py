"""User persistence backed by asyncpg with an in-memory fallback."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

import asyncpg

from campusjam.domain.common.schemas import PublicUser
from campusjam.domain.identity.exceptions import EmailTaken
from campusjam.domain.identity.models import User, UserRelations
from campusjam.infra.memory import MemoryDatabase, memory_db
from campusjam.infra.postgres import get_pool_or_none

_USER_COLUMNS = "id, name, email, password_hash, date_of_birth, campus, avatar_url, created_at, updated_at"


def _public(row) -> PublicUser:
	return PublicUser(id=str(row["id"]), name=row["name"], email=row["email"], avatar_url=row["avatar_url"])


class _InMemoryUserStore:
	def __init__(self, db: MemoryDatabase) -> None:
		self._db = db

	def _email_in_use(self, email: str, *, exclude: str | None = None) -> bool:
		return any(
			row["email"] == email and row["id"] != exclude for row in self._db.users.values()
		)

	async def create(
		self,
		*,
		name: str,
		email: str,
		password_hash: str,
		date_of_birth: date,
		campus: Optional[str],
	) -> User:
		async with self._db.lock:
			if self._email_in_use(email):
				raise EmailTaken()
			now = datetime.now(timezone.utc)
			row = {
				"id": str(uuid4()),
				"name": name,
				"email": email,
				"password_hash": password_hash,
				"date_of_birth": date_of_birth,
				"campus": campus,
				"avatar_url": None,
				"created_at": now,
				"updated_at": now,
			}
			self._db.users[row["id"]] = row
			return User.from_record(row)

	async def get(self, user_id: str) -> Optional[User]:
		row = self._db.users.get(user_id)
		return User.from_record(row) if row else None

	async def list_all(self) -> List[User]:
		rows = sorted(self._db.users.values(), key=lambda r: r["created_at"])
		return [User.from_record(row) for row in rows]

	async def update(self, user_id: str, *, name: Optional[str], email: Optional[str]) -> Optional[User]:
		async with self._db.lock:
			row = self._db.users.get(user_id)
			if row is None:
				return None
			if email is not None and self._email_in_use(email, exclude=user_id):
				raise EmailTaken()
			if name is not None:
				row["name"] = name
			if email is not None:
				row["email"] = email
			row["updated_at"] = datetime.now(timezone.utc)
			return User.from_record(row)

	async def delete(self, user_id: str) -> bool:
		async with self._db.lock:
			return self._db.purge_user(user_id)

	async def relations(self, user_id: str) -> UserRelations:
		db = self._db

		def _ordered(edges, pick, match) -> List[str]:
			items = [(created, pick(key)) for key, created in edges.items() if match(key)]
			return [value for _, value in sorted(items, key=lambda item: item[0])]

		return UserRelations(
			following=_ordered(db.follows, lambda k: k[1], lambda k: k[0] == user_id),
			followers=_ordered(db.follows, lambda k: k[0], lambda k: k[1] == user_id),
			blocked=_ordered(db.blocks, lambda k: k[1], lambda k: k[0] == user_id),
			joined_sessions=_ordered(db.attendees, lambda k: k[0], lambda k: k[1] == user_id),
		)

	async def public_profiles(self, user_ids: Iterable[str]) -> Dict[str, PublicUser]:
		return {uid: _public(self._db.users[uid]) for uid in set(user_ids) if uid in self._db.users}


class UserRepository:
	"""Repository backed by asyncpg with an in-memory fallback."""

	def __init__(self, memory: MemoryDatabase | None = None) -> None:
		self._memory = _InMemoryUserStore(memory or memory_db)

	async def create(
		self,
		*,
		name: str,
		email: str,
		password_hash: str,
		date_of_birth: date,
		campus: Optional[str] = None,
	) -> User:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.create(
				name=name,
				email=email,
				password_hash=password_hash,
				date_of_birth=date_of_birth,
				campus=campus,
			)
		async with pool.acquire() as conn:
			try:
				row = await conn.fetchrow(
					f"""
					INSERT INTO users (id, name, email, password_hash, date_of_birth, campus)
					VALUES ($1, $2, $3, $4, $5, $6)
					RETURNING {_USER_COLUMNS}
					""",
					str(uuid4()),
					name,
					email,
					password_hash,
					date_of_birth,
					campus,
				)
			except asyncpg.UniqueViolationError:
				raise EmailTaken() from None
		return User.from_record(row)

	async def get(self, user_id: str) -> Optional[User]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.get(user_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1", user_id)
		return User.from_record(row) if row else None

	async def list_all(self) -> List[User]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.list_all()
		async with pool.acquire() as conn:
			rows = await conn.fetch(f"SELECT {_USER_COLUMNS} FROM users ORDER BY created_at ASC")
		return [User.from_record(row) for row in rows]

	async def update(self, user_id: str, *, name: Optional[str] = None, email: Optional[str] = None) -> Optional[User]:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.update(user_id, name=name, email=email)
		async with pool.acquire() as conn:
			try:
				row = await conn.fetchrow(
					f"""
					UPDATE users
					SET name = COALESCE($2, name), email = COALESCE($3, email), updated_at = NOW()
					WHERE id = $1
					RETURNING {_USER_COLUMNS}
					""",
					user_id,
					name,
					email,
				)
			except asyncpg.UniqueViolationError:
				raise EmailTaken() from None
		return User.from_record(row) if row else None

	async def delete(self, user_id: str) -> bool:
		"""Delete the account; foreign keys cascade every relation that names it."""
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.delete(user_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow("DELETE FROM users WHERE id = $1 RETURNING id", user_id)
		return row is not None

	async def relations(self, user_id: str) -> UserRelations:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.relations(user_id)
		async with pool.acquire() as conn:
			following = await conn.fetch(
				"SELECT followee_id AS id FROM follows WHERE follower_id = $1 ORDER BY created_at ASC",
				user_id,
			)
			followers = await conn.fetch(
				"SELECT follower_id AS id FROM follows WHERE followee_id = $1 ORDER BY created_at ASC",
				user_id,
			)
			blocked = await conn.fetch(
				"SELECT blocked_id AS id FROM blocks WHERE blocker_id = $1 ORDER BY created_at ASC",
				user_id,
			)
			sessions = await conn.fetch(
				"SELECT session_id AS id FROM session_attendees WHERE user_id = $1 ORDER BY joined_at ASC",
				user_id,
			)
		return UserRelations(
			following=[str(r["id"]) for r in following],
			followers=[str(r["id"]) for r in followers],
			blocked=[str(r["id"]) for r in blocked],
			joined_sessions=[str(r["id"]) for r in sessions],
		)

	async def public_profiles(self, user_ids: Iterable[str]) -> Dict[str, PublicUser]:
		ids = list({str(uid) for uid in user_ids})
		if not ids:
			return {}
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.public_profiles(ids)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT id, name, email, avatar_url FROM users WHERE id = ANY($1::uuid[])",
				ids,
			)
		return {str(row["id"]): _public(row) for row in rows}
