"""FastAPI endpoints for direct messages."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from campusjam.api.errors import DOMAIN_ERRORS, map_domain_error
from campusjam.domain.chat import service
from campusjam.domain.chat.schemas import (
	ConversationRow,
	DirectMessageResponse,
	MarkReadResponse,
	SendDirectMessageRequest,
)
from campusjam.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("/dm", response_model=DirectMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_direct_message(
	payload: SendDirectMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> DirectMessageResponse:
	try:
		return await service.send_direct_message(auth_user, payload.recipient_id, payload.content)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.get("/conversations", response_model=List[ConversationRow])
async def list_conversations(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[ConversationRow]:
	try:
		return await service.get_conversations(auth_user)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.get("/dm/{user_id}", response_model=List[DirectMessageResponse])
async def list_direct_messages(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[DirectMessageResponse]:
	try:
		return await service.get_direct_messages(auth_user, user_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.put("/dm/{sender_id}/read", response_model=MarkReadResponse)
async def mark_as_read(
	sender_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> MarkReadResponse:
	try:
		updated = await service.mark_as_read(auth_user, sender_id)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None
	return MarkReadResponse(updated=updated)
