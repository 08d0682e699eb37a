from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from campusjam.domain.chat import service, sockets
from campusjam.domain.chat.sockets import ChatNamespace
from campusjam.domain.common.errors import InvalidArgument
from campusjam.domain.identity.exceptions import UserNotFound
from campusjam.domain.sessions import service as sessions_service
from campusjam.domain.sessions.exceptions import SessionNotFound
from campusjam.domain.sessions.schemas import CreateSessionRequest
from campusjam.infra.auth import AuthenticatedUser

MISSING_ID = "00000000-0000-4000-8000-000000000000"


def _auth(user):
    return AuthenticatedUser(id=user.id)


@pytest.fixture
def realtime():
    namespace = ChatNamespace()
    namespace.emit = AsyncMock()
    sockets.set_namespace(namespace)
    return namespace


def _emitted(namespace):
    return [(call.args[0], call.kwargs["room"]) for call in namespace.emit.await_args_list]


@pytest.mark.asyncio
async def test_send_direct_message_publishes_to_both_rooms(make_user, realtime):
    alice = await make_user("Alice")
    bob = await make_user("Bob")

    message = await service.send_direct_message(_auth(alice), bob.id, "  hey, jam tonight?  ")

    assert message.content == "hey, jam tonight?"
    assert message.read is False
    assert message.sender.name == "Alice"
    assert message.recipient.id == bob.id
    assert _emitted(realtime) == [
        (sockets.EVENT_RECEIVE_MESSAGE, bob.id),
        (sockets.EVENT_MESSAGE_SENT, alice.id),
    ]
    payload = realtime.emit.await_args_list[0].args[1]
    assert payload["sender"]["email"] == alice.email
    assert payload["createdAt"]


@pytest.mark.asyncio
async def test_send_direct_message_without_transport_still_persists(make_user):
    alice = await make_user()
    bob = await make_user()

    await service.send_direct_message(_auth(alice), bob.id, "hello")

    history = await service.get_direct_messages(_auth(bob), alice.id)
    assert [m.content for m in history] == ["hello"]


@pytest.mark.asyncio
async def test_send_direct_message_survives_emit_failure(make_user, realtime):
    alice = await make_user()
    bob = await make_user()
    realtime.emit.side_effect = RuntimeError("socket gone")

    message = await service.send_direct_message(_auth(alice), bob.id, "still here")

    assert message.content == "still here"


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["", "   ", None, "x" * 2001])
async def test_send_direct_message_rejects_bad_content(make_user, content):
    alice = await make_user()
    bob = await make_user()
    with pytest.raises(InvalidArgument):
        await service.send_direct_message(_auth(alice), bob.id, content)


@pytest.mark.asyncio
async def test_send_direct_message_to_self_or_missing(make_user):
    alice = await make_user()
    with pytest.raises(InvalidArgument):
        await service.send_direct_message(_auth(alice), alice.id, "me")
    with pytest.raises(UserNotFound):
        await service.send_direct_message(_auth(alice), MISSING_ID, "anyone?")


@pytest.mark.asyncio
async def test_history_is_ordered_ascending(make_user):
    alice = await make_user()
    bob = await make_user()
    for text in ("one", "two", "three"):
        await service.send_direct_message(_auth(alice), bob.id, text)
    await service.send_direct_message(_auth(bob), alice.id, "four")

    history = await service.get_direct_messages(_auth(alice), bob.id)

    assert [m.content for m in history] == ["one", "two", "three", "four"]


@pytest.mark.asyncio
async def test_history_rejects_malformed_id(make_user):
    alice = await make_user()
    with pytest.raises(InvalidArgument):
        await service.get_direct_messages(_auth(alice), "bob")


@pytest.mark.asyncio
async def test_conversations_one_row_per_counterpart(make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    carol = await make_user("Carol")
    await service.send_direct_message(_auth(alice), bob.id, "to bob")
    await service.send_direct_message(_auth(carol), alice.id, "from carol")
    await service.send_direct_message(_auth(bob), alice.id, "bob replies")

    rows = await service.get_conversations(_auth(alice))

    assert [r.other_user.id for r in rows] == [bob.id, carol.id]
    assert rows[0].last_message.content == "bob replies"
    assert rows[0].last_message.sender == bob.id
    assert rows[1].other_user.name == "Carol"


@pytest.mark.asyncio
async def test_mark_as_read_is_idempotent(make_user):
    alice = await make_user()
    bob = await make_user()
    await service.send_direct_message(_auth(bob), alice.id, "one")
    await service.send_direct_message(_auth(bob), alice.id, "two")
    await service.send_direct_message(_auth(alice), bob.id, "mine")

    assert await service.mark_as_read(_auth(alice), bob.id) == 2
    assert await service.mark_as_read(_auth(alice), bob.id) == 0

    history = await service.get_direct_messages(_auth(alice), bob.id)
    assert [m.read for m in history] == [True, True, False]


@pytest.mark.asyncio
async def test_session_messages_fan_out(make_user, realtime):
    host = await make_user()
    player = await make_user()
    drummer = await make_user()
    session = await sessions_service.create_session(
        _auth(host),
        CreateSessionRequest(title="Jam", start_time=datetime.now(timezone.utc) + timedelta(days=1)),
    )
    await sessions_service.add_attendee(_auth(player), session.id, player.id)
    await sessions_service.add_attendee(_auth(drummer), session.id, drummer.id)

    sent = await service.send_session_message(_auth(player), session.id, "bring a capo")

    assert sent.session == session.id
    rooms = sorted(room for event, room in _emitted(realtime) if event == sockets.EVENT_SESSION_MESSAGE)
    assert rooms == sorted([host.id, drummer.id])

    history = await service.get_session_messages(session.id)
    assert [m.content for m in history] == ["bring a capo"]
    assert history[0].sender.id == player.id


@pytest.mark.asyncio
async def test_session_messages_require_session(make_user):
    alice = await make_user()
    with pytest.raises(SessionNotFound):
        await service.send_session_message(_auth(alice), MISSING_ID, "hello?")
    with pytest.raises(SessionNotFound):
        await service.get_session_messages(MISSING_ID)
