import pytest


async def _register(client, name):
    response = await client.post(
        "/api/users",
        json={
            "name": name,
            "email": f"{name.lower()}@campus.edu",
            "password": "correct-horse-battery",
            "dateOfBirth": "1999-12-31",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def _as(user):
    return {"X-User-Id": user["id"]}


@pytest.mark.asyncio
async def test_direct_message_round_trip(api_client):
    alice = await _register(api_client, "Alice")
    bob = await _register(api_client, "Bob")

    sent = await api_client.post(
        "/api/messages/dm", json={"recipientId": bob["id"], "content": "hi bob"}, headers=_as(alice)
    )
    assert sent.status_code == 201
    body = sent.json()
    assert body["read"] is False
    assert body["sender"]["name"] == "Alice"
    assert body["recipient"]["id"] == bob["id"]

    conversations = await api_client.get("/api/messages/conversations", headers=_as(bob))
    rows = conversations.json()
    assert rows[0]["otherUser"]["id"] == alice["id"]
    assert rows[0]["lastMessage"]["content"] == "hi bob"
    assert rows[0]["lastMessage"]["read"] is False

    marked = await api_client.put(f"/api/messages/dm/{alice['id']}/read", headers=_as(bob))
    assert marked.status_code == 200
    assert marked.json() == {"updated": 1}

    history = await api_client.get(f"/api/messages/dm/{alice['id']}", headers=_as(bob))
    assert [m["read"] for m in history.json()] == [True]


@pytest.mark.asyncio
async def test_direct_message_errors(api_client):
    alice = await _register(api_client, "Alice")

    to_self = await api_client.post(
        "/api/messages/dm", json={"recipientId": alice["id"], "content": "me"}, headers=_as(alice)
    )
    assert to_self.status_code == 400

    missing = await api_client.post(
        "/api/messages/dm",
        json={"recipientId": "00000000-0000-4000-8000-000000000000", "content": "hello"},
        headers=_as(alice),
    )
    assert missing.status_code == 404

    malformed = await api_client.get("/api/messages/dm/not-a-user", headers=_as(alice))
    assert malformed.status_code == 400

    anonymous = await api_client.get("/api/messages/conversations")
    assert anonymous.status_code == 401
