"""Domain error taxonomy shared by every CampusJam feature."""

from __future__ import annotations


class DomainError(Exception):
	"""Base class for domain failures surfaced to API clients."""

	reason: str = "unknown"
	message: str = "Request failed."

	def __init__(self, reason: str | None = None, message: str | None = None) -> None:
		if reason:
			self.reason = reason
		if message:
			self.message = message
		super().__init__(self.reason)


class InvalidArgument(DomainError):
	reason = "invalid_argument"
	message = "The request is malformed or missing required fields."


class Unauthorized(DomainError):
	reason = "unauthorized"
	message = "Authentication is required."


class Forbidden(DomainError):
	reason = "forbidden"
	message = "You are not allowed to perform this action."


class NotFound(DomainError):
	reason = "not_found"
	message = "The requested resource was not found."


class Conflict(DomainError):
	reason = "conflict"
	message = "The request conflicts with the current state."


class InvalidState(DomainError):
	reason = "invalid_state"
	message = "The operation is not allowed in the current state."


class Internal(DomainError):
	reason = "internal_error"
	message = "Internal server error."
