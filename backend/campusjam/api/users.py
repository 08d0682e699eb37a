"""REST API surface for accounts, follows, blocks, reports and session joins."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from campusjam.api.errors import DOMAIN_ERRORS, map_domain_error
from campusjam.domain.common.schemas import PublicUser
from campusjam.domain.identity import service as identity_service
from campusjam.domain.identity.schemas import RegisterRequest, UpdateUserRequest, UserResponse
from campusjam.domain.sessions import service as session_service
from campusjam.domain.sessions.schemas import JoinSessionRequest
from campusjam.domain.social import reports
from campusjam.domain.social import service as social_service
from campusjam.domain.social.schemas import BlockRequest, FollowRequest, ReportRequest, ReportResponse
from campusjam.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(payload: RegisterRequest) -> UserResponse:
	try:
		return await identity_service.register_user(payload)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.get("", response_model=List[UserResponse])
async def list_users(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[UserResponse]:
	return await identity_service.list_users()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str) -> UserResponse:
	try:
		return await identity_service.get_user_profile(user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
	user_id: str,
	payload: UpdateUserRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> UserResponse:
	try:
		return await identity_service.update_user(auth_user, user_id, payload)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.delete("/{user_id}")
async def delete_user(user_id: str, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		await identity_service.delete_user(auth_user, user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None
	return {"message": "User deleted successfully."}


@router.post("/{user_id}/friends", response_model=UserResponse)
async def follow_user(
	user_id: str,
	payload: FollowRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> UserResponse:
	try:
		return await social_service.follow_user(auth_user, user_id, payload.friend_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.put("/{user_id}/unfriend", response_model=UserResponse)
async def unfollow_user(
	user_id: str,
	payload: FollowRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> UserResponse:
	try:
		return await social_service.unfollow_user(auth_user, user_id, payload.friend_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.put("/{user_id}/block", response_model=UserResponse)
async def block_user(
	user_id: str,
	payload: BlockRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> UserResponse:
	try:
		return await social_service.block_user(auth_user, user_id, payload.blocked_user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.put("/{user_id}/unblock", response_model=UserResponse)
async def unblock_user(
	user_id: str,
	payload: BlockRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> UserResponse:
	try:
		return await social_service.unblock_user(auth_user, user_id, payload.blocked_user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.get("/{user_id}/friends", response_model=List[PublicUser])
async def list_friends(user_id: str) -> List[PublicUser]:
	try:
		return await social_service.list_friends(user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.get("/{user_id}/followers", response_model=List[PublicUser])
async def list_followers(user_id: str) -> List[PublicUser]:
	try:
		return await social_service.list_followers(user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.get("/{user_id}/blocked", response_model=List[PublicUser])
async def list_blocked(user_id: str) -> List[PublicUser]:
	try:
		return await social_service.list_blocked(user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.post("/{user_id}/sessions", response_model=List[PublicUser])
async def join_session(
	user_id: str,
	payload: JoinSessionRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[PublicUser]:
	try:
		return await session_service.add_attendee(auth_user, payload.session_id, user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.delete("/{user_id}/sessions/{session_id}", response_model=List[PublicUser])
async def leave_session(
	user_id: str,
	session_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[PublicUser]:
	try:
		return await session_service.remove_attendee(auth_user, session_id, user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.post("/{user_id}/report", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def report_user(
	user_id: str,
	payload: ReportRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ReportResponse:
	try:
		return await reports.report_user(auth_user, user_id, payload.reason)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None
