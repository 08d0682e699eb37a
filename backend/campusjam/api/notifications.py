"""FastAPI endpoints for the notification inbox."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from campusjam.api.errors import DOMAIN_ERRORS, map_domain_error
from campusjam.domain.common.validation import parse_id
from campusjam.domain.social.notifications import (
	MarkedResponse,
	NotificationResponse,
	UnreadCountResponse,
	notification_service,
)
from campusjam.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[NotificationResponse]:
	try:
		return await notification_service.list_notifications(parse_id(auth_user.id, "user_id"))
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(auth_user: AuthenticatedUser = Depends(get_current_user)) -> UnreadCountResponse:
	try:
		count = await notification_service.get_unread_count(parse_id(auth_user.id, "user_id"))
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None
	return UnreadCountResponse(count=count)


@router.put("/read-all", response_model=MarkedResponse)
async def mark_all_read(auth_user: AuthenticatedUser = Depends(get_current_user)) -> MarkedResponse:
	try:
		updated = await notification_service.mark_all_read(parse_id(auth_user.id, "user_id"))
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None
	return MarkedResponse(updated=updated)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
	notification_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> NotificationResponse:
	try:
		return await notification_service.mark_read(
			parse_id(auth_user.id, "user_id"),
			parse_id(notification_id, "notification_id"),
		)
	except DOMAIN_ERRORS as exc:
		raise map_domain_error(exc) from None
