"""Append-only user reports."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from campusjam.domain.common.validation import MAX_REASON_LENGTH, clean_text, parse_id
from campusjam.domain.identity.exceptions import UserNotFound
from campusjam.domain.social import audit, policy
from campusjam.domain.social.schemas import ReportResponse
from campusjam.infra.auth import AuthenticatedUser
from campusjam.infra.memory import memory_db
from campusjam.infra.postgres import get_pool_or_none

logger = logging.getLogger(__name__)


def _record_to_report(record) -> ReportResponse:
	return ReportResponse(
		id=str(record["id"]),
		reported_user=str(record["reported_user_id"]),
		reported_by=str(record["reported_by_id"]),
		reason=record["reason"],
		created_at=record["created_at"],
	)


async def report_user(auth_user: AuthenticatedUser, reported_user_id: str, reason: object) -> ReportResponse:
	reporter_id = parse_id(auth_user.id, "user_id")
	target_id = parse_id(reported_user_id, "user_id")
	policy.guard_not_self(reporter_id, target_id)
	text = clean_text(reason, field="reason", max_length=MAX_REASON_LENGTH)
	row = {
		"id": str(uuid.uuid4()),
		"reported_user_id": target_id,
		"reported_by_id": reporter_id,
		"reason": text,
		"created_at": datetime.now(timezone.utc),
	}
	pool = await get_pool_or_none()
	if pool is None:
		async with memory_db.lock:
			if target_id not in memory_db.users or reporter_id not in memory_db.users:
				raise UserNotFound()
			memory_db.reports.append(row)
		report = _record_to_report(row)
	else:
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO reports (id, reported_user_id, reported_by_id, reason, created_at)
				SELECT $1, $2, $3, $4, $5
				WHERE EXISTS (SELECT 1 FROM users WHERE id = $2)
				  AND EXISTS (SELECT 1 FROM users WHERE id = $3)
				RETURNING *
				""",
				row["id"],
				target_id,
				reporter_id,
				text,
				row["created_at"],
			)
		if record is None:
			raise UserNotFound()
		report = _record_to_report(record)
	audit.inc_report()
	logger.info("user_reported", extra={"report_id": report.id, "reported_user_id": target_id})
	return report
