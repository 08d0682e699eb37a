"""Pydantic schemas for follows, blocks and reports."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from campusjam.domain.common.schemas import CamelModel


class FollowRequest(CamelModel):
	friend_id: Optional[str] = Field(default=None, description="User to follow or unfollow")


class BlockRequest(CamelModel):
	blocked_user_id: Optional[str] = Field(default=None, description="User to block or unblock")


class ReportRequest(CamelModel):
	reason: Optional[str] = None


class ReportResponse(CamelModel):
	id: str
	reported_user: str
	reported_by: str
	reason: str
	created_at: datetime
