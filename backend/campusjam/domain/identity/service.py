"""Account registration, profile reads and updates, and deletion."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from campusjam.domain.common.errors import Forbidden, InvalidArgument
from campusjam.domain.common.validation import parse_id
from campusjam.domain.identity.exceptions import UserNotFound
from campusjam.domain.identity.models import User
from campusjam.domain.identity.repo import UserRepository
from campusjam.domain.identity.schemas import RegisterRequest, UpdateUserRequest, UserResponse
from campusjam.infra.auth import AuthenticatedUser
from campusjam.infra.password import hash_password

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r".+@.+\..+")
MIN_PASSWORD_LENGTH = 8
MAX_NAME_LENGTH = 100

_users = UserRepository()


def _clean_name(value: Optional[str]) -> str:
	name = (value or "").strip()
	if not name:
		raise InvalidArgument("missing_name", "Name is required.")
	if len(name) > MAX_NAME_LENGTH:
		raise InvalidArgument("name_too_long", f"Name must be at most {MAX_NAME_LENGTH} characters.")
	return name


def _clean_email(value: Optional[str]) -> str:
	email = (value or "").strip().lower()
	if not email:
		raise InvalidArgument("missing_email", "Email is required.")
	if not EMAIL_RE.fullmatch(email):
		raise InvalidArgument("invalid_email", "Please provide a valid email address.")
	return email


def ensure_self(auth_user: AuthenticatedUser, user_id: str) -> str:
	actor_id = parse_id(auth_user.id, "user_id")
	if actor_id != user_id:
		raise Forbidden("not_owner", "You can only modify your own account.")
	return actor_id


async def load_user(user_id: str) -> User:
	user = await _users.get(user_id)
	if user is None:
		raise UserNotFound()
	return user


async def build_profile(user: User) -> UserResponse:
	relations = await _users.relations(user.id)
	return UserResponse.from_model(user, relations)


async def register_user(payload: RegisterRequest) -> UserResponse:
	name = _clean_name(payload.name)
	email = _clean_email(payload.email)
	if len(payload.password or "") < MIN_PASSWORD_LENGTH:
		raise InvalidArgument(
			"password_too_short",
			f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
		)
	campus = (payload.campus or "").strip() or None
	user = await _users.create(
		name=name,
		email=email,
		password_hash=hash_password(payload.password),
		date_of_birth=payload.date_of_birth,
		campus=campus,
	)
	logger.info("user_registered", extra={"user_id": user.id})
	return await build_profile(user)


async def get_user_profile(user_id: str) -> UserResponse:
	user = await load_user(parse_id(user_id, "user_id"))
	return await build_profile(user)


async def list_users() -> List[UserResponse]:
	users = await _users.list_all()
	return [await build_profile(user) for user in users]


async def update_user(auth_user: AuthenticatedUser, user_id: str, payload: UpdateUserRequest) -> UserResponse:
	target_id = parse_id(user_id, "user_id")
	ensure_self(auth_user, target_id)
	if payload.name is None and payload.email is None:
		raise InvalidArgument("empty_update", "Provide at least one field to update.")
	name = _clean_name(payload.name) if payload.name is not None else None
	email = _clean_email(payload.email) if payload.email is not None else None
	user = await _users.update(target_id, name=name, email=email)
	if user is None:
		raise UserNotFound()
	return await build_profile(user)


async def delete_user(auth_user: AuthenticatedUser, user_id: str) -> None:
	target_id = parse_id(user_id, "user_id")
	ensure_self(auth_user, target_id)
	if not await _users.delete(target_id):
		raise UserNotFound()
	logger.info("user_deleted", extra={"user_id": target_id})
