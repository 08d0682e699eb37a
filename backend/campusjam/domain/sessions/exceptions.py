"""Errors raised by session membership and lifecycle operations."""

from __future__ import annotations

from campusjam.domain.common.errors import Conflict, Forbidden, InvalidState, NotFound


class SessionNotFound(NotFound):
	reason = "session_not_found"
	message = "Session not found."


class NotAttendee(NotFound):
	reason = "not_attendee"
	message = "User is not an attendee of this session."


class AlreadyAttending(Conflict):
	reason = "already_attending"
	message = "User has already joined this session."


class AlreadyInvited(Conflict):
	reason = "already_invited"
	message = "User has already been invited to this session."


class NotHost(Forbidden):
	reason = "not_host"
	message = "Only the host can change this session."


class NotInvited(Forbidden):
	reason = "not_invited"
	message = "This private session requires an invitation."


class InvalidTransition(InvalidState):
	reason = "invalid_transition"

	def __init__(self, current: str, target: str) -> None:
		super().__init__(message=f"Cannot move a {current} session to {target}.")
		self.current = current
		self.target = target
