"""REST API surface for jam sessions, their members and session chat."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from campusjam.api.errors import DOMAIN_ERRORS, map_domain_error
from campusjam.domain.chat import service as chat_service
from campusjam.domain.chat.schemas import SendSessionMessageRequest, SessionMessageResponse
from campusjam.domain.common.schemas import PublicUser
from campusjam.domain.sessions import service
from campusjam.domain.sessions.schemas import (
	CreateSessionRequest,
	InviteRequest,
	ParticipantRequest,
	SessionResponse,
	UpdateSessionRequest,
	VisibilityRequest,
	VisibilityResponse,
)
from campusjam.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("", response_model=List[SessionResponse])
async def list_sessions() -> List[SessionResponse]:
	return await service.list_sessions()


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
	payload: CreateSessionRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> SessionResponse:
	try:
		return await service.create_session(auth_user, payload)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


# Fixed paths first so they are not captured by /{session_id}.
@router.get("/active", response_model=List[SessionResponse])
async def list_active() -> List[SessionResponse]:
	return await service.list_active()


@router.get("/upcoming", response_model=List[SessionResponse])
async def list_upcoming() -> List[SessionResponse]:
	return await service.list_upcoming()


@router.get("/past", response_model=List[SessionResponse])
async def list_past() -> List[SessionResponse]:
	return await service.list_past()


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str) -> SessionResponse:
	try:
		return await service.get_session(session_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_session(
	session_id: str,
	payload: UpdateSessionRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> SessionResponse:
	try:
		return await service.update_session(auth_user, session_id, payload)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.delete("/{session_id}")
async def delete_session(session_id: str, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		await service.delete_session(auth_user, session_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None
	return {"message": "Session deleted successfully."}


@router.get("/{session_id}/participants", response_model=List[PublicUser])
async def list_participants(session_id: str) -> List[PublicUser]:
	try:
		return await service.list_participants(session_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.post("/{session_id}/participants", response_model=List[PublicUser])
async def add_participant(
	session_id: str,
	payload: ParticipantRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[PublicUser]:
	try:
		return await service.add_attendee(auth_user, session_id, payload.user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.delete("/{session_id}/participants/{user_id}", response_model=List[PublicUser])
async def remove_participant(
	session_id: str,
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[PublicUser]:
	try:
		return await service.remove_attendee(auth_user, session_id, user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.post("/{session_id}/invites", response_model=SessionResponse)
async def invite_user(
	session_id: str,
	payload: InviteRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> SessionResponse:
	try:
		return await service.invite_user(auth_user, session_id, payload.user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.post("/{session_id}/start", response_model=SessionResponse)
async def start_session(session_id: str, auth_user: AuthenticatedUser = Depends(get_current_user)) -> SessionResponse:
	try:
		return await service.start_session(auth_user, session_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.post("/{session_id}/cancel", response_model=SessionResponse)
async def cancel_session(session_id: str, auth_user: AuthenticatedUser = Depends(get_current_user)) -> SessionResponse:
	try:
		return await service.cancel_session(auth_user, session_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.post("/{session_id}/complete", response_model=SessionResponse)
async def complete_session(session_id: str, auth_user: AuthenticatedUser = Depends(get_current_user)) -> SessionResponse:
	try:
		return await service.mark_complete(auth_user, session_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.get("/{session_id}/visibility", response_model=VisibilityResponse)
async def get_visibility(session_id: str) -> VisibilityResponse:
	try:
		return await service.get_visibility(session_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.put("/{session_id}/visibility", response_model=VisibilityResponse)
async def set_visibility(
	session_id: str,
	payload: VisibilityRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> VisibilityResponse:
	try:
		return await service.set_visibility(auth_user, session_id, payload.is_public)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.get("/{session_id}/messages", response_model=List[SessionMessageResponse])
async def list_session_messages(
	session_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[SessionMessageResponse]:
	try:
		return await chat_service.get_session_messages(session_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.post("/{session_id}/messages", response_model=SessionMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_session_message(
	session_id: str,
	payload: SendSessionMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> SessionMessageResponse:
	try:
		return await chat_service.send_session_message(auth_user, session_id, payload.content)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None
