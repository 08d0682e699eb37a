"""Domain-level exceptions for follows, blocks and reports."""

from __future__ import annotations

from campusjam.domain.common.errors import Conflict, InvalidArgument
from campusjam.infra.rate_limit import RateLimitExceeded


class SelfActionError(InvalidArgument):
	reason = "self_action"
	message = "You cannot perform this action on yourself."


class AlreadyFollowing(Conflict):
	reason = "already_following"
	message = "You already follow this user."


class AlreadyBlocked(Conflict):
	reason = "already_blocked"
	message = "This user is already blocked."


class FollowBlocked(Conflict):
	reason = "blocked"
	message = "You cannot follow this user."


class FollowLimitExceeded(RateLimitExceeded):
	"""Raised when follow operations hit quota."""

	def __init__(self, reason: str) -> None:
		super().__init__(reason)
		self.reason = reason


class BlockLimitExceeded(RateLimitExceeded):
	"""Raised when block operations hit quota."""

	def __init__(self, reason: str) -> None:
		super().__init__(reason)
		self.reason = reason
