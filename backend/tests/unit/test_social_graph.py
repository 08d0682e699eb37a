import asyncio

import pytest

from campusjam.domain.common.errors import Forbidden
from campusjam.domain.identity import service as identity_service
from campusjam.domain.identity.exceptions import UserNotFound
from campusjam.domain.social import service
from campusjam.domain.social.exceptions import (
    AlreadyBlocked,
    AlreadyFollowing,
    FollowBlocked,
    FollowLimitExceeded,
    SelfActionError,
)
from campusjam.domain.social.notifications import notification_service
from campusjam.infra.auth import AuthenticatedUser
from campusjam.settings import settings

MISSING_ID = "00000000-0000-4000-8000-000000000000"


def _auth(user):
    return AuthenticatedUser(id=user.id)


@pytest.mark.asyncio
async def test_follow_updates_both_views(make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")

    result = await service.follow_user(_auth(alice), alice.id, bob.id)

    assert result.connections.following == [bob.id]
    bob_profile = await identity_service.get_user_profile(bob.id)
    assert bob_profile.connections.followers == [alice.id]
    assert [u.id for u in await service.list_followers(bob.id)] == [alice.id]
    assert [u.id for u in await service.list_friends(alice.id)] == [bob.id]


@pytest.mark.asyncio
async def test_follow_self_is_rejected(make_user):
    alice = await make_user()
    with pytest.raises(SelfActionError):
        await service.follow_user(_auth(alice), alice.id, alice.id)


@pytest.mark.asyncio
async def test_follow_twice_conflicts(make_user):
    alice = await make_user()
    bob = await make_user()
    await service.follow_user(_auth(alice), alice.id, bob.id)

    with pytest.raises(AlreadyFollowing):
        await service.follow_user(_auth(alice), alice.id, bob.id)

    assert [u.id for u in await service.list_following(alice.id)] == [bob.id]


@pytest.mark.asyncio
async def test_follow_missing_target(make_user):
    alice = await make_user()
    with pytest.raises(UserNotFound):
        await service.follow_user(_auth(alice), alice.id, MISSING_ID)


@pytest.mark.asyncio
async def test_follow_on_behalf_of_someone_else_is_forbidden(make_user):
    alice = await make_user()
    bob = await make_user()
    carol = await make_user()
    with pytest.raises(Forbidden):
        await service.follow_user(_auth(carol), alice.id, bob.id)


@pytest.mark.asyncio
@pytest.mark.parametrize("blocker_is_target", [False, True])
async def test_follow_across_block_is_rejected(make_user, blocker_is_target):
    alice = await make_user()
    bob = await make_user()
    if blocker_is_target:
        await service.block_user(_auth(bob), bob.id, alice.id)
    else:
        await service.block_user(_auth(alice), alice.id, bob.id)

    with pytest.raises(FollowBlocked):
        await service.follow_user(_auth(alice), alice.id, bob.id)

    assert await service.list_following(alice.id) == []
    assert await service.list_followers(bob.id) == []


@pytest.mark.asyncio
async def test_block_removes_follows_in_both_directions(make_user):
    alice = await make_user()
    bob = await make_user()
    await service.follow_user(_auth(alice), alice.id, bob.id)
    await service.follow_user(_auth(bob), bob.id, alice.id)

    result = await service.block_user(_auth(alice), alice.id, bob.id)

    assert result.blocked_users == [bob.id]
    assert result.connections.following == []
    assert result.connections.followers == []
    bob_profile = await identity_service.get_user_profile(bob.id)
    assert bob_profile.connections.following == []
    assert bob_profile.connections.followers == []


@pytest.mark.asyncio
async def test_block_twice_conflicts(make_user):
    alice = await make_user()
    bob = await make_user()
    await service.block_user(_auth(alice), alice.id, bob.id)
    with pytest.raises(AlreadyBlocked):
        await service.block_user(_auth(alice), alice.id, bob.id)


@pytest.mark.asyncio
async def test_unfollow_without_edge_is_noop(make_user):
    alice = await make_user()
    bob = await make_user()

    result = await service.unfollow_user(_auth(alice), alice.id, bob.id)

    assert result.connections.following == []


@pytest.mark.asyncio
async def test_unblock_does_not_restore_follows(make_user):
    alice = await make_user()
    bob = await make_user()
    await service.follow_user(_auth(alice), alice.id, bob.id)
    await service.block_user(_auth(alice), alice.id, bob.id)

    result = await service.unblock_user(_auth(alice), alice.id, bob.id)

    assert result.blocked_users == []
    assert result.connections.following == []
    # Following again is allowed once the block is gone.
    again = await service.follow_user(_auth(alice), alice.id, bob.id)
    assert again.connections.following == [bob.id]


@pytest.mark.asyncio
async def test_concurrent_follow_and_block_keep_invariant(make_user):
    alice = await make_user()
    bob = await make_user()

    results = await asyncio.gather(
        service.follow_user(_auth(alice), alice.id, bob.id),
        service.block_user(_auth(bob), bob.id, alice.id),
        return_exceptions=True,
    )

    assert not isinstance(results[1], Exception)
    bob_profile = await identity_service.get_user_profile(bob.id)
    assert bob_profile.blocked_users == [alice.id]
    assert await service.list_following(alice.id) == []
    assert await service.list_followers(bob.id) == []


@pytest.mark.asyncio
async def test_follow_sends_notification(make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")

    await service.follow_user(_auth(alice), alice.id, bob.id)

    notifications = await notification_service.list_notifications(bob.id)
    assert len(notifications) == 1
    assert notifications[0].message == "Alice started following you."
    assert notifications[0].link == f"/profile/{alice.id}"
    assert notifications[0].sender.id == alice.id
    assert await notification_service.get_unread_count(bob.id) == 1


@pytest.mark.asyncio
async def test_follow_survives_notification_failure(monkeypatch, make_user):
    alice = await make_user()
    bob = await make_user()

    async def broken(*args, **kwargs):
        raise RuntimeError("store down")

    monkeypatch.setattr(notification_service, "notify_follow", broken)

    result = await service.follow_user(_auth(alice), alice.id, bob.id)

    assert result.connections.following == [bob.id]


@pytest.mark.asyncio
async def test_follow_rate_limited(monkeypatch, make_user):
    monkeypatch.setattr(settings, "follow_per_minute", 1)
    alice = await make_user()
    bob = await make_user()
    carol = await make_user()
    await service.follow_user(_auth(alice), alice.id, bob.id)

    with pytest.raises(FollowLimitExceeded):
        await service.follow_user(_auth(alice), alice.id, carol.id)


@pytest.mark.asyncio
async def test_list_projection_for_missing_user():
    with pytest.raises(UserNotFound):
        await service.list_blocked(MISSING_ID)
