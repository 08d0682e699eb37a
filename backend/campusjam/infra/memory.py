"""In-memory store used when Postgres is unavailable (tests, local tooling).

Rows are plain dicts keyed like the SQL columns so repositories can map them
with the same helpers they use for asyncpg records. Relations are kept as
edge dicts keyed by id pairs, mirroring the unique constraints of the schema.
Callers hold ``lock`` for every read-check-write sequence.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Tuple

Row = Dict[str, Any]
Edge = Tuple[str, str]


class MemoryDatabase:
	def __init__(self) -> None:
		self.reset()

	def reset(self) -> None:
		self.lock = asyncio.Lock()
		self.users: Dict[str, Row] = {}
		self.follows: Dict[Edge, datetime] = {}  # (follower_id, followee_id)
		self.blocks: Dict[Edge, datetime] = {}  # (blocker_id, blocked_id)
		self.sessions: Dict[str, Row] = {}
		self.attendees: Dict[Edge, datetime] = {}  # (session_id, user_id)
		self.invites: Dict[Edge, datetime] = {}  # (session_id, user_id)
		self.direct_messages: List[Row] = []
		self.session_messages: List[Row] = []
		self.notifications: Dict[str, Row] = {}
		self.reports: List[Row] = []
		self._seq = 0

	def next_seq(self) -> int:
		self._seq += 1
		return self._seq

	def purge_session(self, session_id: str) -> bool:
		"""Delete a session and everything that references it."""
		if self.sessions.pop(session_id, None) is None:
			return False
		for edges in (self.attendees, self.invites):
			for key in [k for k in edges if k[0] == session_id]:
				del edges[key]
		self.session_messages = [m for m in self.session_messages if m["session_id"] != session_id]
		return True

	def purge_user(self, user_id: str) -> bool:
		"""Delete a user and cascade like the foreign keys of the SQL schema."""
		if self.users.pop(user_id, None) is None:
			return False
		for edges in (self.follows, self.blocks):
			for key in [k for k in edges if user_id in k]:
				del edges[key]
		for edges in (self.attendees, self.invites):
			for key in [k for k in edges if k[1] == user_id]:
				del edges[key]
		for session_id in [sid for sid, row in self.sessions.items() if row["host_id"] == user_id]:
			self.purge_session(session_id)
		self.direct_messages = [
			m for m in self.direct_messages if user_id not in (m["sender_id"], m["recipient_id"])
		]
		self.session_messages = [m for m in self.session_messages if m["sender_id"] != user_id]
		self.notifications = {
			nid: row
			for nid, row in self.notifications.items()
			if user_id not in (row["recipient_id"], row["sender_id"])
		}
		self.reports = [
			r for r in self.reports if user_id not in (r["reported_user_id"], r["reported_by_id"])
		]
		return True


memory_db = MemoryDatabase()
