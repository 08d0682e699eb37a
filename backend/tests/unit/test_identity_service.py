from datetime import date, datetime, timedelta, timezone

import pytest

from campusjam.domain.chat import service as chat_service
from campusjam.domain.common.errors import Forbidden, InvalidArgument
from campusjam.domain.identity import service
from campusjam.domain.identity.exceptions import EmailTaken, UserNotFound
from campusjam.domain.identity.schemas import RegisterRequest, UpdateUserRequest
from campusjam.domain.sessions import service as sessions_service
from campusjam.domain.sessions.exceptions import SessionNotFound
from campusjam.domain.sessions.schemas import CreateSessionRequest
from campusjam.domain.social import service as social_service
from campusjam.infra.auth import AuthenticatedUser
from campusjam.infra.memory import memory_db
from campusjam.infra.password import verify_password


def _auth(user):
    return AuthenticatedUser(id=user.id)


def _register(**overrides):
    payload = {
        "name": "Robin",
        "email": "Robin@Campus.edu",
        "password": "correct-horse-battery",
        "date_of_birth": date(2000, 2, 29),
    }
    payload.update(overrides)
    return RegisterRequest(**payload)


@pytest.mark.asyncio
async def test_register_normalises_and_hashes():
    user = await service.register_user(_register(name="  Robin  ", campus=" North "))

    assert user.name == "Robin"
    assert user.email == "robin@campus.edu"
    assert user.campus == "North"
    stored = memory_db.users[user.id]
    assert stored["password_hash"] != "correct-horse-battery"
    assert verify_password(stored["password_hash"], "correct-horse-battery")
    assert "passwordHash" not in user.model_dump(by_alias=True)


@pytest.mark.asyncio
async def test_register_duplicate_email_is_case_insensitive():
    await service.register_user(_register())
    with pytest.raises(EmailTaken):
        await service.register_user(_register(email="ROBIN@campus.edu"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [{"name": " "}, {"email": "robin"}, {"email": "robin@campus"}, {"password": "short"}],
)
async def test_register_validation(overrides):
    with pytest.raises(InvalidArgument):
        await service.register_user(_register(**overrides))


@pytest.mark.asyncio
async def test_update_user_self_only(make_user):
    alice = await make_user()
    bob = await make_user()

    with pytest.raises(Forbidden):
        await service.update_user(_auth(bob), alice.id, UpdateUserRequest(name="Mallory"))
    with pytest.raises(InvalidArgument):
        await service.update_user(_auth(alice), alice.id, UpdateUserRequest())

    updated = await service.update_user(_auth(alice), alice.id, UpdateUserRequest(name="Alicia"))
    assert updated.name == "Alicia"
    assert updated.email == alice.email


@pytest.mark.asyncio
async def test_update_user_email_conflict(make_user):
    alice = await make_user()
    bob = await make_user()
    with pytest.raises(EmailTaken):
        await service.update_user(_auth(alice), alice.id, UpdateUserRequest(email=bob.email.upper()))


@pytest.mark.asyncio
async def test_get_user_missing_and_malformed():
    with pytest.raises(UserNotFound):
        await service.get_user_profile("00000000-0000-4000-8000-000000000000")
    with pytest.raises(InvalidArgument):
        await service.get_user_profile("robin")


@pytest.mark.asyncio
async def test_delete_user_cascades(make_user):
    alice = await make_user()
    bob = await make_user()
    host = await make_user()
    await social_service.follow_user(_auth(alice), alice.id, bob.id)
    await social_service.follow_user(_auth(bob), bob.id, alice.id)
    await social_service.block_user(_auth(host), host.id, alice.id)
    joined = await sessions_service.create_session(
        _auth(host),
        CreateSessionRequest(title="Open mic", start_time=datetime.now(timezone.utc) + timedelta(days=2)),
    )
    hosted = await sessions_service.create_session(
        _auth(alice),
        CreateSessionRequest(title="Alice's jam", start_time=datetime.now(timezone.utc) + timedelta(days=3)),
    )
    await sessions_service.add_attendee(_auth(alice), joined.id, alice.id)
    await sessions_service.add_attendee(_auth(bob), hosted.id, bob.id)
    await chat_service.send_direct_message(_auth(alice), bob.id, "bye")

    with pytest.raises(Forbidden):
        await service.delete_user(_auth(bob), alice.id)
    await service.delete_user(_auth(alice), alice.id)

    bob_profile = await service.get_user_profile(bob.id)
    assert bob_profile.connections.following == []
    assert bob_profile.connections.followers == []
    assert bob_profile.joined_sessions == []
    host_profile = await service.get_user_profile(host.id)
    assert host_profile.blocked_users == []
    assert (await sessions_service.get_session(joined.id)).attendees == []
    with pytest.raises(SessionNotFound):
        await sessions_service.get_session(hosted.id)
    assert await chat_service.get_conversations(_auth(bob)) == []
    with pytest.raises(UserNotFound):
        await service.get_user_profile(alice.id)
