"""Service layer for follows and blocks."""

from __future__ import annotations

import logging
from typing import List

from campusjam.domain.common.schemas import PublicUser
from campusjam.domain.common.side_effects import best_effort
from campusjam.domain.common.validation import parse_id
from campusjam.domain.identity import service as identity_service
from campusjam.domain.identity.exceptions import UserNotFound
from campusjam.domain.identity.repo import UserRepository
from campusjam.domain.identity.schemas import UserResponse
from campusjam.domain.social import audit, policy
from campusjam.domain.social.notifications import notification_service
from campusjam.domain.social.repo import SocialRepository
from campusjam.infra.auth import AuthenticatedUser

logger = logging.getLogger(__name__)

_users = UserRepository()
_social = SocialRepository()


def _resolve_pair(auth_user: AuthenticatedUser, user_id: str, target_id: object, field: str) -> tuple[str, str]:
	actor_id = parse_id(user_id, "user_id")
	identity_service.ensure_self(auth_user, actor_id)
	target = parse_id(target_id, field)
	policy.guard_not_self(actor_id, target)
	return actor_id, target


async def _profile(user_id: str) -> UserResponse:
	user = await identity_service.load_user(user_id)
	return await identity_service.build_profile(user)


async def follow_user(auth_user: AuthenticatedUser, user_id: str, friend_id: object) -> UserResponse:
	actor_id, target_id = _resolve_pair(auth_user, user_id, friend_id, "friend_id")
	await policy.enforce_follow_limits(actor_id)
	await _social.follow(actor_id, target_id)
	audit.inc_follow("follow")
	actor = await _profile(actor_id)
	await best_effort(
		"notify_follow",
		notification_service.notify_follow(target_id, actor_id, actor.name),
		recipient_id=target_id,
	)
	await best_effort(
		"audit_follow",
		audit.log_social_event("followed", {"user_id": actor_id, "target_id": target_id}),
	)
	return actor


async def unfollow_user(auth_user: AuthenticatedUser, user_id: str, friend_id: object) -> UserResponse:
	actor_id, target_id = _resolve_pair(auth_user, user_id, friend_id, "friend_id")
	removed = await _social.unfollow(actor_id, target_id)
	if removed:
		audit.inc_follow("unfollow")
		await best_effort(
			"audit_unfollow",
			audit.log_social_event("unfollowed", {"user_id": actor_id, "target_id": target_id}),
		)
	return await _profile(actor_id)


async def block_user(auth_user: AuthenticatedUser, user_id: str, blocked_user_id: object) -> UserResponse:
	actor_id, target_id = _resolve_pair(auth_user, user_id, blocked_user_id, "blocked_user_id")
	await policy.enforce_block_limits(actor_id)
	await _social.block(actor_id, target_id)
	audit.inc_block("block")
	await best_effort(
		"audit_block",
		audit.log_social_event("blocked", {"user_id": actor_id, "target_id": target_id}),
	)
	return await _profile(actor_id)


async def unblock_user(auth_user: AuthenticatedUser, user_id: str, blocked_user_id: object) -> UserResponse:
	actor_id, target_id = _resolve_pair(auth_user, user_id, blocked_user_id, "blocked_user_id")
	removed = await _social.unblock(actor_id, target_id)
	if removed:
		audit.inc_block("unblock")
		await best_effort(
			"audit_unblock",
			audit.log_social_event("unblocked", {"user_id": actor_id, "target_id": target_id}),
		)
	return await _profile(actor_id)


async def _project(user_id: str, pick: str) -> List[PublicUser]:
	subject_id = parse_id(user_id, "user_id")
	if await _users.get(subject_id) is None:
		raise UserNotFound()
	relations = await _users.relations(subject_id)
	ids = getattr(relations, pick)
	profiles = await _users.public_profiles(ids)
	return [profiles[uid] for uid in ids if uid in profiles]


async def list_following(user_id: str) -> List[PublicUser]:
	return await _project(user_id, "following")


async def list_friends(user_id: str) -> List[PublicUser]:
	"""Friends are the users the subject follows."""
	return await list_following(user_id)


async def list_followers(user_id: str) -> List[PublicUser]:
	return await _project(user_id, "followers")


async def list_blocked(user_id: str) -> List[PublicUser]:
	return await _project(user_id, "blocked")
