"""Guard checks and quotas for social graph mutations."""

from __future__ import annotations

from campusjam.domain.social.exceptions import BlockLimitExceeded, FollowLimitExceeded, SelfActionError
from campusjam.infra import rate_limit
from campusjam.settings import settings


def guard_not_self(user_id: str, target_id: str) -> None:
	if str(user_id) == str(target_id):
		raise SelfActionError()


async def enforce_follow_limits(user_id: str) -> None:
	if not await rate_limit.allow("follow", user_id, limit=settings.follow_per_minute):
		raise FollowLimitExceeded("per_minute")


async def enforce_block_limits(user_id: str) -> None:
	if not await rate_limit.allow("block", user_id, limit=settings.block_per_minute):
		raise BlockLimitExceeded("per_minute")
