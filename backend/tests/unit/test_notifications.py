import uuid

import pytest

from campusjam.domain.social.notifications import NotificationNotFound, notification_service


@pytest.mark.asyncio
async def test_list_is_newest_first_and_capped(make_user):
    recipient = await make_user()
    sender = await make_user("Sam")
    for _ in range(22):
        await notification_service.notify_follow(recipient.id, sender.id, "Sam")

    items = await notification_service.list_notifications(recipient.id)

    assert len(items) == 20
    stamps = [(item.created_at) for item in items]
    assert stamps == sorted(stamps, reverse=True)
    assert items[0].sender.name == "Sam"
    assert await notification_service.get_unread_count(recipient.id) == 22


@pytest.mark.asyncio
async def test_mark_read_is_scoped_to_recipient(make_user):
    recipient = await make_user()
    sender = await make_user()
    notif = await notification_service.notify_follow(recipient.id, sender.id, "S")

    with pytest.raises(NotificationNotFound):
        await notification_service.mark_read(sender.id, notif.id)
    with pytest.raises(NotificationNotFound):
        await notification_service.mark_read(recipient.id, str(uuid.uuid4()))

    marked = await notification_service.mark_read(recipient.id, notif.id)
    assert marked.is_read is True
    assert await notification_service.get_unread_count(recipient.id) == 0


@pytest.mark.asyncio
async def test_mark_all_read_is_idempotent(make_user):
    recipient = await make_user()
    sender = await make_user()
    await notification_service.notify_follow(recipient.id, sender.id, "S")
    await notification_service.notify_follow(recipient.id, sender.id, "S")

    assert await notification_service.mark_all_read(recipient.id) == 2
    assert await notification_service.mark_all_read(recipient.id) == 0
    assert await notification_service.get_unread_count(recipient.id) == 0
