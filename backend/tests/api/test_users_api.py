import pytest
from httpx import ASGITransport, AsyncClient

from campusjam.domain.identity import service as identity_service
from campusjam.main import app


async def _register(client, name, email):
    response = await client.post(
        "/api/users",
        json={"name": name, "email": email, "password": "correct-horse-battery", "dateOfBirth": "2001-03-04"},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _as(user):
    return {"X-User-Id": user["id"]}


@pytest.mark.asyncio
async def test_register_returns_camel_case_profile(api_client):
    body = await _register(api_client, "Alice", "Alice@Campus.edu")

    assert body["email"] == "alice@campus.edu"
    assert body["dateOfBirth"] == "2001-03-04"
    assert body["connections"] == {"following": [], "followers": []}
    assert body["blockedUsers"] == []
    assert body["joinedSessions"] == []
    assert "password" not in body and "passwordHash" not in body


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(api_client):
    await _register(api_client, "Alice", "alice@campus.edu")
    response = await api_client.post(
        "/api/users",
        json={"name": "Al", "email": "ALICE@campus.edu", "password": "correct-horse-battery", "dateOfBirth": "2001-03-04"},
    )
    assert response.status_code == 409
    body = response.json()
    assert body["detail"] == "email_taken"
    assert body["request_id"]


@pytest.mark.asyncio
async def test_register_body_validation_is_400(api_client):
    response = await api_client.post("/api/users", json={"name": "Alice", "email": "a@b.co"})
    assert response.status_code == 400
    assert response.json()["detail"] == "validation_error"


@pytest.mark.asyncio
async def test_list_users_requires_auth(api_client):
    response = await api_client.get("/api/users")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_follow_flow(api_client):
    alice = await _register(api_client, "Alice", "alice@campus.edu")
    bob = await _register(api_client, "Bob", "bob@campus.edu")

    response = await api_client.post(
        f"/api/users/{alice['id']}/friends", json={"friendId": bob["id"]}, headers=_as(alice)
    )
    assert response.status_code == 200
    assert response.json()["connections"]["following"] == [bob["id"]]

    followers = await api_client.get(f"/api/users/{bob['id']}/followers")
    assert [u["id"] for u in followers.json()] == [alice["id"]]
    assert set(followers.json()[0]) == {"id", "name", "email", "avatarUrl"}

    again = await api_client.post(
        f"/api/users/{alice['id']}/friends", json={"friendId": bob["id"]}, headers=_as(alice)
    )
    assert again.status_code == 409
    assert again.json()["detail"] == "already_following"

    unfollow = await api_client.put(
        f"/api/users/{alice['id']}/unfriend", json={"friendId": bob["id"]}, headers=_as(alice)
    )
    assert unfollow.status_code == 200
    assert unfollow.json()["connections"]["following"] == []

    noop = await api_client.put(
        f"/api/users/{alice['id']}/unfriend", json={"friendId": bob["id"]}, headers=_as(alice)
    )
    assert noop.status_code == 200


@pytest.mark.asyncio
async def test_follow_errors(api_client):
    alice = await _register(api_client, "Alice", "alice@campus.edu")
    bob = await _register(api_client, "Bob", "bob@campus.edu")

    self_follow = await api_client.post(
        f"/api/users/{alice['id']}/friends", json={"friendId": alice["id"]}, headers=_as(alice)
    )
    assert self_follow.status_code == 400

    missing = await api_client.post(
        f"/api/users/{alice['id']}/friends",
        json={"friendId": "00000000-0000-4000-8000-000000000000"},
        headers=_as(alice),
    )
    assert missing.status_code == 404

    other_account = await api_client.post(
        f"/api/users/{alice['id']}/friends", json={"friendId": bob["id"]}, headers=_as(bob)
    )
    assert other_account.status_code == 403

    malformed = await api_client.post(
        f"/api/users/{alice['id']}/friends", json={"friendId": "bob"}, headers=_as(alice)
    )
    assert malformed.status_code == 400


@pytest.mark.asyncio
async def test_block_then_follow_is_rejected(api_client):
    alice = await _register(api_client, "Alice", "alice@campus.edu")
    bob = await _register(api_client, "Bob", "bob@campus.edu")
    await api_client.post(f"/api/users/{alice['id']}/friends", json={"friendId": bob["id"]}, headers=_as(alice))

    blocked = await api_client.put(
        f"/api/users/{bob['id']}/block", json={"blockedUserId": alice["id"]}, headers=_as(bob)
    )
    assert blocked.status_code == 200
    assert blocked.json()["blockedUsers"] == [alice["id"]]
    assert blocked.json()["connections"]["followers"] == []

    follow = await api_client.post(
        f"/api/users/{alice['id']}/friends", json={"friendId": bob["id"]}, headers=_as(alice)
    )
    assert follow.status_code == 409
    assert follow.json()["detail"] == "blocked"

    listed = await api_client.get(f"/api/users/{bob['id']}/blocked")
    assert [u["id"] for u in listed.json()] == [alice["id"]]

    unblocked = await api_client.put(
        f"/api/users/{bob['id']}/unblock", json={"blockedUserId": alice["id"]}, headers=_as(bob)
    )
    assert unblocked.json()["blockedUsers"] == []


@pytest.mark.asyncio
async def test_update_and_delete_account(api_client):
    alice = await _register(api_client, "Alice", "alice@campus.edu")
    bob = await _register(api_client, "Bob", "bob@campus.edu")

    forbidden = await api_client.patch(f"/api/users/{alice['id']}", json={"name": "X"}, headers=_as(bob))
    assert forbidden.status_code == 403

    updated = await api_client.patch(f"/api/users/{alice['id']}", json={"name": "Alicia"}, headers=_as(alice))
    assert updated.status_code == 200
    assert updated.json()["name"] == "Alicia"

    deleted = await api_client.delete(f"/api/users/{alice['id']}", headers=_as(alice))
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "User deleted successfully."}

    gone = await api_client.get(f"/api/users/{alice['id']}")
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_report_user(api_client):
    alice = await _register(api_client, "Alice", "alice@campus.edu")
    bob = await _register(api_client, "Bob", "bob@campus.edu")

    response = await api_client.post(
        f"/api/users/{bob['id']}/report", json={"reason": "spam"}, headers=_as(alice)
    )
    assert response.status_code == 201
    assert response.json()["reportedBy"] == alice["id"]

    blank = await api_client.post(f"/api/users/{bob['id']}/report", json={"reason": " "}, headers=_as(alice))
    assert blank.status_code == 400


@pytest.mark.asyncio
async def test_unhandled_error_is_generic_500(monkeypatch):
    async def boom(user_id):
        raise RuntimeError("connection reset by peer")

    monkeypatch.setattr(identity_service, "get_user_profile", boom)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/api/users/00000000-0000-4000-8000-000000000000")

    assert response.status_code == 500
    body = response.json()
    assert body["detail"] == "internal_error"
    assert "connection reset" not in response.text
