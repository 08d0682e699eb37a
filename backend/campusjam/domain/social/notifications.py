"""Domain logic for user notifications."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from campusjam.domain.chat import sockets
from campusjam.domain.common.errors import NotFound
from campusjam.domain.common.schemas import CamelModel
from campusjam.domain.common.side_effects import best_effort
from campusjam.infra.memory import MemoryDatabase, memory_db
from campusjam.infra.postgres import get_pool_or_none
from campusjam.obs import metrics as obs_metrics

NOTIFICATION_LIST_LIMIT = 20
KIND_FOLLOW = "follow"

_SELECT_WITH_SENDER = """
SELECT n.id, n.recipient_id, n.sender_id, n.type, n.message, n.is_read, n.link, n.created_at,
    s.name AS sender_name
FROM notifications n
JOIN users s ON s.id = n.sender_id
"""


class NotificationNotFound(NotFound):
    reason = "notification_not_found"
    message = "Notification not found."


@dataclass
class Notification:
    id: str
    recipient_id: str
    sender_id: str
    type: str
    message: str
    is_read: bool
    link: str
    created_at: datetime
    sender_name: Optional[str] = None

    @classmethod
    def from_record(cls, record) -> "Notification":
        return cls(
            id=str(record["id"]),
            recipient_id=str(record["recipient_id"]),
            sender_id=str(record["sender_id"]),
            type=record["type"],
            message=record["message"],
            is_read=bool(record["is_read"]),
            link=record["link"] or "",
            created_at=record["created_at"],
            sender_name=record.get("sender_name"),
        )


class NotificationSender(CamelModel):
    id: str
    name: Optional[str] = None


class NotificationResponse(CamelModel):
    id: str
    recipient: str
    sender: NotificationSender
    type: str
    message: str
    is_read: bool
    link: str
    created_at: datetime

    @classmethod
    def from_model(cls, notif: Notification) -> "NotificationResponse":
        return cls(
            id=notif.id,
            recipient=notif.recipient_id,
            sender=NotificationSender(id=notif.sender_id, name=notif.sender_name),
            type=notif.type,
            message=notif.message,
            is_read=notif.is_read,
            link=notif.link,
            created_at=notif.created_at,
        )


class UnreadCountResponse(CamelModel):
    count: int


class MarkedResponse(CamelModel):
    updated: int


class _InMemoryNotificationStore:
    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    def _with_sender(self, row: dict) -> Notification:
        sender = self._db.users.get(row["sender_id"])
        return Notification.from_record({**row, "sender_name": sender["name"] if sender else None})

    async def create(self, row: dict) -> Notification:
        async with self._db.lock:
            self._db.notifications[row["id"]] = row
            return self._with_sender(row)

    async def list_for_user(self, user_id: str, limit: int) -> List[Notification]:
        rows = [row for row in self._db.notifications.values() if row["recipient_id"] == user_id]
        rows.sort(key=lambda r: (r["created_at"], r["seq"]), reverse=True)
        return [self._with_sender(row) for row in rows[:limit]]

    async def unread_count(self, user_id: str) -> int:
        return sum(
            1
            for row in self._db.notifications.values()
            if row["recipient_id"] == user_id and not row["is_read"]
        )

    async def mark_read(self, user_id: str, notification_id: str) -> Optional[Notification]:
        async with self._db.lock:
            row = self._db.notifications.get(notification_id)
            if row is None or row["recipient_id"] != user_id:
                return None
            row["is_read"] = True
            return self._with_sender(row)

    async def mark_all_read(self, user_id: str) -> int:
        async with self._db.lock:
            updated = 0
            for row in self._db.notifications.values():
                if row["recipient_id"] == user_id and not row["is_read"]:
                    row["is_read"] = True
                    updated += 1
            return updated


class NotificationRepository:
    def __init__(self, memory: MemoryDatabase | None = None) -> None:
        self._memory_db = memory or memory_db
        self._memory = _InMemoryNotificationStore(self._memory_db)

    async def create(
        self,
        *,
        recipient_id: str,
        sender_id: str,
        kind: str,
        message: str,
        link: str = "",
    ) -> Notification:
        row = {
            "id": str(uuid.uuid4()),
            "recipient_id": recipient_id,
            "sender_id": sender_id,
            "type": kind,
            "message": message,
            "is_read": False,
            "link": link,
            "created_at": datetime.now(timezone.utc),
        }
        pool = await get_pool_or_none()
        if pool is None:
            row["seq"] = self._memory_db.next_seq()
            return await self._memory.create(row)
        async with pool.acquire() as conn:
            record = await conn.fetchrow(
                """
                WITH inserted AS (
                    INSERT INTO notifications (id, recipient_id, sender_id, type, message, link, created_at)
                    VALUES ($1, $2, $3, $4, $5, $6, $7)
                    RETURNING *
                )
                SELECT i.id, i.recipient_id, i.sender_id, i.type, i.message, i.is_read, i.link, i.created_at,
                    s.name AS sender_name
                FROM inserted i
                JOIN users s ON s.id = i.sender_id
                """,
                row["id"],
                recipient_id,
                sender_id,
                kind,
                message,
                link,
                row["created_at"],
            )
        return Notification.from_record(record)

    async def list_for_user(self, user_id: str, limit: int = NOTIFICATION_LIST_LIMIT) -> List[Notification]:
        pool = await get_pool_or_none()
        if pool is None:
            return await self._memory.list_for_user(user_id, limit)
        async with pool.acquire() as conn:
            rows = await conn.fetch(
                _SELECT_WITH_SENDER
                + """
                WHERE n.recipient_id = $1
                ORDER BY n.created_at DESC, n.seq DESC
                LIMIT $2
                """,
                user_id,
                limit,
            )
        return [Notification.from_record(row) for row in rows]

    async def unread_count(self, user_id: str) -> int:
        pool = await get_pool_or_none()
        if pool is None:
            return await self._memory.unread_count(user_id)
        async with pool.acquire() as conn:
            count = await conn.fetchval(
                "SELECT COUNT(*) FROM notifications WHERE recipient_id = $1 AND is_read = FALSE",
                user_id,
            )
        return int(count or 0)

    async def mark_read(self, user_id: str, notification_id: str) -> Optional[Notification]:
        pool = await get_pool_or_none()
        if pool is None:
            return await self._memory.mark_read(user_id, notification_id)
        async with pool.acquire() as conn:
            updated = await conn.fetchrow(
                "UPDATE notifications SET is_read = TRUE WHERE id = $1 AND recipient_id = $2 RETURNING id",
                notification_id,
                user_id,
            )
            if updated is None:
                return None
            row = await conn.fetchrow(_SELECT_WITH_SENDER + "WHERE n.id = $1", notification_id)
        return Notification.from_record(row) if row else None

    async def mark_all_read(self, user_id: str) -> int:
        pool = await get_pool_or_none()
        if pool is None:
            return await self._memory.mark_all_read(user_id)
        async with pool.acquire() as conn:
            rows = await conn.fetch(
                """
                UPDATE notifications SET is_read = TRUE
                WHERE recipient_id = $1 AND is_read = FALSE
                RETURNING id
                """,
                user_id,
            )
        return len(rows)


class NotificationService:
    def __init__(self, repo: NotificationRepository | None = None) -> None:
        self._repo = repo or NotificationRepository()

    async def notify_follow(self, recipient_id: str, sender_id: str, sender_name: str) -> Notification:
        notif = await self._repo.create(
            recipient_id=recipient_id,
            sender_id=sender_id,
            kind=KIND_FOLLOW,
            message=f"{sender_name} started following you.",
            link=f"/profile/{sender_id}",
        )
        obs_metrics.inc_notification(KIND_FOLLOW)
        payload = NotificationResponse.from_model(notif).model_dump(mode="json", by_alias=True)
        # Socket failure shouldn't fail notification creation
        await best_effort("new_notification", sockets.emit_new_notification(recipient_id, payload), notification_id=notif.id)
        return notif

    async def list_notifications(self, user_id: str, *, limit: int = NOTIFICATION_LIST_LIMIT) -> List[NotificationResponse]:
        items = await self._repo.list_for_user(user_id, limit=limit)
        return [NotificationResponse.from_model(item) for item in items]

    async def get_unread_count(self, user_id: str) -> int:
        return await self._repo.unread_count(user_id)

    async def mark_read(self, user_id: str, notification_id: str) -> NotificationResponse:
        notif = await self._repo.mark_read(user_id, notification_id)
        if notif is None:
            raise NotificationNotFound()
        return NotificationResponse.from_model(notif)

    async def mark_all_read(self, user_id: str) -> int:
        return await self._repo.mark_all_read(user_id)


notification_service = NotificationService()
