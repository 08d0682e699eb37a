"""Socket.IO namespace that delivers realtime events to per-user rooms.

A connection joins the room named after its user id, either through the
connect auth payload or by emitting ``join_chat``. Each connection is in at
most one user room; rooms live only in this process and are rebuilt when
clients reconnect.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import socketio
from fastapi import HTTPException

from campusjam.domain.common.errors import InvalidArgument
from campusjam.domain.common.validation import parse_id
from campusjam.infra.auth import verify_access_jwt
from campusjam.obs import metrics as obs_metrics
from campusjam.settings import settings

logger = logging.getLogger(__name__)

_namespace: "ChatNamespace" | None = None

EVENT_JOINED = "chat:joined"
EVENT_RECEIVE_MESSAGE = "receive_message"
EVENT_MESSAGE_SENT = "message_sent"
EVENT_SESSION_MESSAGE = "session_message"
EVENT_NEW_NOTIFICATION = "new_notification"


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def _user_id_from(payload: Any) -> Optional[str]:
	if isinstance(payload, dict):
		payload = payload.get("userId") or payload.get("user_id")
	if payload is None:
		return None
	user_id = str(payload).strip()
	return user_id or None


def _canonical_id(value: str) -> Optional[str]:
	try:
		return parse_id(value, "user_id")
	except InvalidArgument:
		return None


class ChatNamespace(socketio.AsyncNamespace):
	"""Namespace that places clients in a per-user room for direct delivery."""

	def __init__(self, namespace: str = "/") -> None:
		super().__init__(namespace)
		self._rooms: Dict[str, str] = {}
		self._verified: Dict[str, str] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		scope = environ.get("asgi.scope", environ)
		auth_payload = auth or {}
		token = auth_payload.get("token") if isinstance(auth_payload, dict) else None
		if token:
			try:
				user = verify_access_jwt(str(token))
			except HTTPException:
				raise ConnectionRefusedError("invalid_token") from None
			verified = _canonical_id(user.id)
			if verified is None:
				raise ConnectionRefusedError("invalid_token")
			self._verified[sid] = verified
		raw_id = self._verified.get(sid) or _user_id_from(auth_payload) or _header(scope, "x-user-id")
		user_id = _canonical_id(raw_id) if raw_id else None
		if raw_id and user_id is None:
			raise ConnectionRefusedError("invalid_user_id")
		if user_id and not await self._join(sid, user_id):
			self._verified.pop(sid, None)
			raise ConnectionRefusedError("unauthenticated")
		obs_metrics.socket_connected(self.namespace)

	async def on_disconnect(self, sid: str, reason: Any = None) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		self._verified.pop(sid, None)
		room = self._rooms.pop(sid, None)
		if room is not None:
			await self.leave_room(sid, room)

	async def on_join_chat(self, sid: str, payload: Any = None) -> dict:
		obs_metrics.socket_event(self.namespace, "join_chat")
		raw_id = _user_id_from(payload)
		if not raw_id:
			return {"ok": False, "error": "missing_user_id"}
		user_id = _canonical_id(raw_id)
		if user_id is None:
			return {"ok": False, "error": "invalid_user_id"}
		if not await self._join(sid, user_id):
			return {"ok": False, "error": "forbidden"}
		return {"ok": True, "room": self.user_room(user_id)}

	async def _join(self, sid: str, user_id: str) -> bool:
		verified = self._verified.get(sid)
		if verified is not None and verified != user_id:
			return False
		if verified is None and not settings.is_dev():
			# Outside development a room is only granted to a token-verified user.
			return False
		room = self.user_room(user_id)
		previous = self._rooms.get(sid)
		if previous is not None and previous != room:
			await self.leave_room(sid, previous)
		await self.enter_room(sid, room)
		self._rooms[sid] = room
		await self.emit(EVENT_JOINED, {"userId": user_id}, room=sid)
		return True

	def room_of(self, sid: str) -> Optional[str]:
		return self._rooms.get(sid)

	@staticmethod
	def user_room(user_id: object) -> str:
		"""Room name for a user: the canonical string form of the id."""
		return parse_id(user_id, "user_id")


def set_namespace(namespace: ChatNamespace | None) -> None:
	global _namespace
	_namespace = namespace


def get_namespace() -> ChatNamespace | None:
	return _namespace


async def emit_to_user(user_id: str, event: str, payload: dict) -> bool:
	"""Publish ``event`` to every connection in the user's room.

	Returns False when no realtime transport is attached to the process.
	"""
	if _namespace is None:
		logger.info("realtime_unavailable", extra={"event_name": event, "target_user_id": str(user_id)})
		return False
	obs_metrics.socket_event(_namespace.namespace, event)
	await _namespace.emit(event, payload, room=ChatNamespace.user_room(user_id))
	return True


async def emit_receive_message(user_id: str, payload: dict) -> bool:
	return await emit_to_user(user_id, EVENT_RECEIVE_MESSAGE, payload)


async def emit_message_sent(user_id: str, payload: dict) -> bool:
	return await emit_to_user(user_id, EVENT_MESSAGE_SENT, payload)


async def emit_session_message(user_id: str, payload: dict) -> bool:
	return await emit_to_user(user_id, EVENT_SESSION_MESSAGE, payload)


async def emit_new_notification(user_id: str, payload: dict) -> bool:
	return await emit_to_user(user_id, EVENT_NEW_NOTIFICATION, payload)
