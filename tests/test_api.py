"""Tests for basic API functionality: health, auth, error envelopes."""
import pytest

from web.auth import create_access_token, hash_password, verify_password


@pytest.mark.asyncio
async def test_health(client):
    """Health endpoint returns ok."""
    r = await client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"] == {"status": "OK"}


@pytest.mark.asyncio
async def test_login_bootstraps_admin(client):
    r = await client.post("/api/auth/login", json={"username": "admin", "password": "testpass123"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["username"] == "admin"
    assert data["role"] == "admin"
    assert data["tokenType"] == "bearer"
    assert data["accessToken"]


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    r = await client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Invalid username or password"}


@pytest.mark.asyncio
async def test_me_requires_token(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_me_with_token(client, auth_headers):
    r = await client.get("/api/auth/me", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"] == {"username": "admin", "role": "admin"}


@pytest.mark.asyncio
async def test_me_accepts_x_auth_token(client, auth_headers):
    token = auth_headers["Authorization"].split(" ", 1)[1]
    r = await client.get("/api/auth/me", headers={"X-Auth-Token": token})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_staff_account_cannot_create_users(client, auth_headers):
    """Admin creates a staff account; staff can read but not manage accounts."""
    r = await client.post(
        "/api/auth/users",
        json={"username": "coach", "password": "coachpass1", "role": "staff"},
        headers=auth_headers,
    )
    assert r.status_code == 201
    assert r.json()["data"] == {"username": "coach", "role": "staff"}

    r = await client.post("/api/auth/login", json={"username": "coach", "password": "coachpass1"})
    assert r.status_code == 200
    staff_headers = {"Authorization": f"Bearer {r.json()['data']['accessToken']}"}

    r = await client.get("/api/tournament-registrations", headers=staff_headers)
    assert r.status_code == 200

    r = await client.post(
        "/api/auth/users",
        json={"username": "other", "password": "otherpass1"},
        headers=staff_headers,
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Admin access required"


@pytest.mark.asyncio
async def test_create_user_rejects_bad_role_and_duplicates(client, auth_headers):
    r = await client.post(
        "/api/auth/users",
        json={"username": "x", "password": "pw", "role": "owner"},
        headers=auth_headers,
    )
    assert r.status_code == 400

    r = await client.post("/api/auth/users", json={"username": "admin", "password": "pw"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Username already exists"


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(client):
    r = await client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json()["success"] is False


def test_long_passwords_are_distinguished():
    long_password = "p" * 100
    hashed = hash_password(long_password)
    assert verify_password(long_password, hashed)
    assert not verify_password("p" * 99, hashed)


@pytest.mark.asyncio
async def test_token_for_unknown_account_is_rejected(client):
    token = create_access_token("ghost", "admin")
    r = await client.get("/api/tournament-registrations", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["success"] is False
