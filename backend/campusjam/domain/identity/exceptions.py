"""Errors raised by account management."""

from __future__ import annotations

from campusjam.domain.common.errors import Conflict, NotFound


class UserNotFound(NotFound):
	reason = "user_not_found"
	message = "User not found."


class EmailTaken(Conflict):
	reason = "email_taken"
	message = "An account with this email already exists."
