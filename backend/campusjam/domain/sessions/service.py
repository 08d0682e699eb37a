"""Session lifecycle, membership and visibility flows."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from campusjam.domain.common.errors import Forbidden, InvalidArgument
from campusjam.domain.common.schemas import PublicUser
from campusjam.domain.common.validation import parse_id
from campusjam.domain.identity.repo import UserRepository
from campusjam.domain.sessions import models
from campusjam.domain.sessions.exceptions import NotHost, NotInvited, SessionNotFound
from campusjam.domain.sessions.models import Session, SessionStatus
from campusjam.domain.sessions.repo import SessionRepository
from campusjam.domain.sessions.schemas import (
	CreateSessionRequest,
	SessionResponse,
	UpdateSessionRequest,
	VisibilityResponse,
)
from campusjam.infra.auth import AuthenticatedUser
from campusjam.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_sessions = SessionRepository()
_users = UserRepository()


def _utc(value: Optional[datetime]) -> Optional[datetime]:
	if value is None or value.tzinfo is not None:
		return value
	return value.replace(tzinfo=timezone.utc)


def _clean_title(value: Optional[str]) -> str:
	title = (value or "").strip()
	if not title:
		raise InvalidArgument("missing_title", "A title for the jam session is required.")
	if len(title) > models.MAX_TITLE_LENGTH:
		raise InvalidArgument("title_too_long", f"Title must be at most {models.MAX_TITLE_LENGTH} characters.")
	return title


def _check_description(value: Optional[str]) -> Optional[str]:
	if value is not None and len(value) > models.MAX_DESCRIPTION_LENGTH:
		raise InvalidArgument(
			"description_too_long",
			f"Description must be at most {models.MAX_DESCRIPTION_LENGTH} characters.",
		)
	return value


def _clean_instruments(values: List[str]) -> List[str]:
	return [item.strip() for item in values if item and item.strip()]


def _strip(value: Optional[str]) -> Optional[str]:
	if value is None:
		return None
	return value.strip() or None


async def load_session(session_id: str) -> Session:
	session = await _sessions.get(parse_id(session_id, "session_id"))
	if session is None:
		raise SessionNotFound()
	return session


async def _load_hosted(auth_user: AuthenticatedUser, session_id: str) -> Session:
	session = await load_session(session_id)
	if not session.is_host(parse_id(auth_user.id, "user_id")):
		raise NotHost()
	return session


async def _profiles(user_ids: List[str]) -> List[PublicUser]:
	profiles = await _users.public_profiles(user_ids)
	return [profiles[uid] for uid in user_ids if uid in profiles]


async def create_session(auth_user: AuthenticatedUser, payload: CreateSessionRequest) -> SessionResponse:
	host_id = parse_id(auth_user.id, "user_id")
	start_time = _utc(payload.start_time)
	end_time = _utc(payload.end_time)
	if end_time is not None and end_time <= start_time:
		raise InvalidArgument("invalid_end_time", "End time must be after the start time.")
	session = await _sessions.create(
		host_id,
		{
			"title": _clean_title(payload.title),
			"description": _check_description(payload.description),
			"is_public": payload.is_public,
			"start_time": start_time,
			"end_time": end_time,
			"location": _strip(payload.location),
			"genre": _strip(payload.genre),
			"skill_level": payload.skill_level,
			"instruments_needed": _clean_instruments(payload.instruments_needed),
			"spotify_playlist_url": _strip(payload.spotify_playlist_url),
		},
	)
	logger.info("session_created", extra={"session_id": session.id, "host_id": host_id})
	return SessionResponse.from_model(session)


async def get_session(session_id: str) -> SessionResponse:
	return SessionResponse.from_model(await load_session(session_id))


async def list_sessions() -> List[SessionResponse]:
	sessions = await _sessions.list_public()
	return [SessionResponse.from_model(s) for s in sessions]


async def list_active() -> List[SessionResponse]:
	sessions = await _sessions.list_public(statuses=(SessionStatus.ONGOING,))
	return [SessionResponse.from_model(s) for s in sessions]


async def list_upcoming(*, now: Optional[datetime] = None) -> List[SessionResponse]:
	sessions = await _sessions.list_public(
		statuses=(SessionStatus.SCHEDULED,),
		starts_after=now or datetime.now(timezone.utc),
	)
	return [SessionResponse.from_model(s) for s in sessions]


async def list_past() -> List[SessionResponse]:
	sessions = await _sessions.list_public(
		statuses=(SessionStatus.FINISHED, SessionStatus.CANCELLED),
		newest_first=True,
	)
	return [SessionResponse.from_model(s) for s in sessions]


async def update_session(
	auth_user: AuthenticatedUser, session_id: str, payload: UpdateSessionRequest
) -> SessionResponse:
	session = await _load_hosted(auth_user, session_id)
	changes = payload.model_dump(exclude_unset=True)
	if not changes:
		raise InvalidArgument("empty_update", "Provide at least one field to update.")
	if "title" in changes:
		changes["title"] = _clean_title(changes["title"])
	if "description" in changes:
		_check_description(changes["description"])
	if "start_time" in changes:
		if changes["start_time"] is None:
			raise InvalidArgument("missing_start_time", "Start time is required.")
		changes["start_time"] = _utc(changes["start_time"])
		end_time = _utc(session.end_time)
		if end_time is not None and end_time <= changes["start_time"]:
			raise InvalidArgument("invalid_end_time", "End time must be after the start time.")
	if changes.get("skill_level", "") is None:
		raise InvalidArgument("invalid_skill_level", "Skill level cannot be empty.")
	if "instruments_needed" in changes:
		changes["instruments_needed"] = _clean_instruments(changes["instruments_needed"] or [])
	for key in ("location", "genre", "spotify_playlist_url"):
		if key in changes:
			changes[key] = _strip(changes[key])
	updated = await _sessions.update(session.id, changes)
	if updated is None:
		raise SessionNotFound()
	return SessionResponse.from_model(updated)


async def delete_session(auth_user: AuthenticatedUser, session_id: str) -> None:
	session = await _load_hosted(auth_user, session_id)
	if not await _sessions.delete(session.id):
		raise SessionNotFound()
	logger.info("session_deleted", extra={"session_id": session.id})


async def add_attendee(auth_user: AuthenticatedUser, session_id: str, user_id: object) -> List[PublicUser]:
	"""Join a user to a session; the user themself or the host may do this."""
	sid = parse_id(session_id, "session_id")
	uid = parse_id(user_id, "user_id")
	actor_id = parse_id(auth_user.id, "user_id")
	session = await load_session(sid)
	if actor_id not in (uid, session.host_id):
		raise Forbidden("not_allowed", "You can only add yourself to a session.")
	if not session.is_public and not session.is_host(actor_id) and uid not in session.invited_users:
		raise NotInvited()
	attendees = await _sessions.add_attendee(sid, uid)
	obs_metrics.inc_session_membership("join")
	return await _profiles(attendees)


async def remove_attendee(auth_user: AuthenticatedUser, session_id: str, user_id: object) -> List[PublicUser]:
	sid = parse_id(session_id, "session_id")
	uid = parse_id(user_id, "user_id")
	actor_id = parse_id(auth_user.id, "user_id")
	session = await load_session(sid)
	if actor_id not in (uid, session.host_id):
		raise Forbidden("not_allowed", "You can only remove yourself from a session.")
	attendees = await _sessions.remove_attendee(sid, uid)
	obs_metrics.inc_session_membership("leave")
	return await _profiles(attendees)


async def list_participants(session_id: str) -> List[PublicUser]:
	session = await load_session(session_id)
	return await _profiles(session.attendees)


async def invite_user(auth_user: AuthenticatedUser, session_id: str, user_id: object) -> SessionResponse:
	session = await _load_hosted(auth_user, session_id)
	uid = parse_id(user_id, "user_id")
	if session.is_host(uid):
		raise InvalidArgument("self_action", "The host does not need an invitation.")
	updated = await _sessions.invite(session.id, uid)
	return SessionResponse.from_model(updated)


async def _transition(
	auth_user: AuthenticatedUser,
	session_id: str,
	allowed: tuple,
	target: SessionStatus,
	*,
	end_time: Optional[datetime] = None,
) -> SessionResponse:
	session = await _load_hosted(auth_user, session_id)
	updated = await _sessions.transition(session.id, allowed, target, end_time=end_time)
	obs_metrics.inc_session_transition(target.value)
	logger.info("session_transition", extra={"session_id": session.id, "status": target.value})
	return SessionResponse.from_model(updated)


async def start_session(auth_user: AuthenticatedUser, session_id: str) -> SessionResponse:
	return await _transition(auth_user, session_id, models.START_FROM, SessionStatus.ONGOING)


async def cancel_session(auth_user: AuthenticatedUser, session_id: str) -> SessionResponse:
	return await _transition(auth_user, session_id, models.CANCEL_FROM, SessionStatus.CANCELLED)


async def mark_complete(auth_user: AuthenticatedUser, session_id: str) -> SessionResponse:
	"""Finish the session now. Finished or cancelled sessions are rejected."""
	return await _transition(
		auth_user,
		session_id,
		models.COMPLETE_FROM,
		SessionStatus.FINISHED,
		end_time=datetime.now(timezone.utc),
	)


async def get_visibility(session_id: str) -> VisibilityResponse:
	session = await load_session(session_id)
	return VisibilityResponse(id=session.id, is_public=session.is_public)


async def set_visibility(auth_user: AuthenticatedUser, session_id: str, is_public: bool) -> VisibilityResponse:
	session = await _load_hosted(auth_user, session_id)
	updated = await _sessions.set_visibility(session.id, is_public)
	if updated is None:
		raise SessionNotFound()
	return VisibilityResponse(id=updated.id, is_public=updated.is_public)
