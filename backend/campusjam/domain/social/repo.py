"""Follow and block edges with atomic pair mutations."""

from __future__ import annotations

from datetime import datetime, timezone

import asyncpg

from campusjam.domain.identity.exceptions import UserNotFound
from campusjam.domain.social.exceptions import AlreadyBlocked, AlreadyFollowing, FollowBlocked
from campusjam.infra.memory import MemoryDatabase, memory_db
from campusjam.infra.postgres import get_pool_or_none

_LOCK_PAIR_SQL = """
SELECT id FROM users
WHERE id = ANY($1::uuid[])
ORDER BY id
FOR NO KEY UPDATE
"""

_BLOCKED_EITHER_WAY_SQL = """
SELECT EXISTS (
	SELECT 1 FROM blocks
	WHERE (blocker_id = $1 AND blocked_id = $2)
	   OR (blocker_id = $2 AND blocked_id = $1)
)
"""


async def _lock_pair(conn: asyncpg.Connection, user_a: str, user_b: str) -> None:
	"""Lock both user rows in id order so concurrent mutations of a pair serialize."""
	rows = await conn.fetch(_LOCK_PAIR_SQL, [user_a, user_b])
	if len(rows) != 2:
		raise UserNotFound()


class _InMemorySocialStore:
	def __init__(self, db: MemoryDatabase) -> None:
		self._db = db

	def _require_pair(self, user_a: str, user_b: str) -> None:
		if user_a not in self._db.users or user_b not in self._db.users:
			raise UserNotFound()

	def _blocked_either_way(self, user_a: str, user_b: str) -> bool:
		return (user_a, user_b) in self._db.blocks or (user_b, user_a) in self._db.blocks

	async def follow(self, follower_id: str, followee_id: str) -> None:
		async with self._db.lock:
			self._require_pair(follower_id, followee_id)
			if self._blocked_either_way(follower_id, followee_id):
				raise FollowBlocked()
			if (follower_id, followee_id) in self._db.follows:
				raise AlreadyFollowing()
			self._db.follows[(follower_id, followee_id)] = datetime.now(timezone.utc)

	async def unfollow(self, follower_id: str, followee_id: str) -> bool:
		async with self._db.lock:
			self._require_pair(follower_id, followee_id)
			return self._db.follows.pop((follower_id, followee_id), None) is not None

	async def block(self, blocker_id: str, blocked_id: str) -> None:
		async with self._db.lock:
			self._require_pair(blocker_id, blocked_id)
			if (blocker_id, blocked_id) in self._db.blocks:
				raise AlreadyBlocked()
			self._db.blocks[(blocker_id, blocked_id)] = datetime.now(timezone.utc)
			self._db.follows.pop((blocker_id, blocked_id), None)
			self._db.follows.pop((blocked_id, blocker_id), None)

	async def unblock(self, blocker_id: str, blocked_id: str) -> bool:
		async with self._db.lock:
			self._require_pair(blocker_id, blocked_id)
			return self._db.blocks.pop((blocker_id, blocked_id), None) is not None


class SocialRepository:
	"""Mutations of the follow and block edge tables.

	Each mutation checks its preconditions and writes inside one transaction
	holding row locks on both users, so a follow racing a block on the same
	pair can never leave a follow edge next to a block edge.
	"""

	def __init__(self, memory: MemoryDatabase | None = None) -> None:
		self._memory = _InMemorySocialStore(memory or memory_db)

	async def follow(self, follower_id: str, followee_id: str) -> None:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.follow(follower_id, followee_id)
		async with pool.acquire() as conn:
			async with conn.transaction():
				await _lock_pair(conn, follower_id, followee_id)
				if await conn.fetchval(_BLOCKED_EITHER_WAY_SQL, follower_id, followee_id):
					raise FollowBlocked()
				row = await conn.fetchrow(
					"""
					INSERT INTO follows (follower_id, followee_id)
					VALUES ($1, $2)
					ON CONFLICT (follower_id, followee_id) DO NOTHING
					RETURNING follower_id
					""",
					follower_id,
					followee_id,
				)
				if row is None:
					raise AlreadyFollowing()

	async def unfollow(self, follower_id: str, followee_id: str) -> bool:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.unfollow(follower_id, followee_id)
		async with pool.acquire() as conn:
			async with conn.transaction():
				await _lock_pair(conn, follower_id, followee_id)
				row = await conn.fetchrow(
					"DELETE FROM follows WHERE follower_id = $1 AND followee_id = $2 RETURNING follower_id",
					follower_id,
					followee_id,
				)
		return row is not None

	async def block(self, blocker_id: str, blocked_id: str) -> None:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.block(blocker_id, blocked_id)
		async with pool.acquire() as conn:
			async with conn.transaction():
				await _lock_pair(conn, blocker_id, blocked_id)
				row = await conn.fetchrow(
					"""
					INSERT INTO blocks (blocker_id, blocked_id)
					VALUES ($1, $2)
					ON CONFLICT (blocker_id, blocked_id) DO NOTHING
					RETURNING blocker_id
					""",
					blocker_id,
					blocked_id,
				)
				if row is None:
					raise AlreadyBlocked()
				await conn.execute(
					"""
					DELETE FROM follows
					WHERE (follower_id = $1 AND followee_id = $2)
					   OR (follower_id = $2 AND followee_id = $1)
					""",
					blocker_id,
					blocked_id,
				)

	async def unblock(self, blocker_id: str, blocked_id: str) -> bool:
		pool = await get_pool_or_none()
		if pool is None:
			return await self._memory.unblock(blocker_id, blocked_id)
		async with pool.acquire() as conn:
			async with conn.transaction():
				await _lock_pair(conn, blocker_id, blocked_id)
				row = await conn.fetchrow(
					"DELETE FROM blocks WHERE blocker_id = $1 AND blocked_id = $2 RETURNING blocker_id",
					blocker_id,
					blocked_id,
				)
		return row is not None

