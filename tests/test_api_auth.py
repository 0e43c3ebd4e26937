"""Integration tests for the auth and admin endpoints."""

import pytest
from httpx import AsyncClient

from tests.conftest import signup


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_health_is_rate_limited():
    from carpool.api.middleware import limiter
    from carpool.api.routes import admin

    assert f"{admin.__name__}.health" in limiter._route_limits


@pytest.mark.asyncio
async def test_signup_returns_token_and_default_trust(client: AsyncClient):
    resp = await client.post(
        "/api/v1/auth/signup",
        json={
            "name": "Asha",
            "email": "Asha@Example.com",
            "password": "secret123",
            "phone": "9876543210",
            "gender": "female",
            "community": [" IITB ", "IITB", ""],
        },
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["token"]
    assert data["user"]["email"] == "asha@example.com"
    assert data["user"]["trust_score"] == 50
    assert data["user"]["trust_level"] == "fair"
    assert data["user"]["community"] == ["IITB"]


@pytest.mark.asyncio
async def test_duplicate_email_rejected(client: AsyncClient):
    await signup(client, "Asha")
    resp = await client.post(
        "/api/v1/auth/signup",
        json={
            "name": "Asha Two",
            "email": "asha@example.com",
            "password": "secret123",
            "phone": "9876543210",
        },
    )
    assert resp.status_code == 400
    assert resp.json()["kind"] == "validation"


@pytest.mark.asyncio
async def test_short_password_is_malformed(client: AsyncClient):
    resp = await client.post(
        "/api/v1/auth/signup",
        json={
            "name": "Asha",
            "email": "asha@example.com",
            "password": "123",
            "phone": "9876543210",
        },
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_login(client: AsyncClient):
    await signup(client, "Asha")
    resp = await client.post(
        "/api/v1/auth/login",
        json={"email": "asha@example.com", "password": "secret123"},
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Login successful"

    resp = await client.post(
        "/api/v1/auth/login",
        json={"email": "asha@example.com", "password": "wrong-pass"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_me_requires_token(client: AsyncClient):
    assert (await client.get("/api/v1/auth/me")).status_code == 401
    resp = await client.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_me(client: AsyncClient):
    asha = await signup(client, "Asha", gender="female")
    resp = await client.get("/api/v1/auth/me", headers=asha["headers"])
    assert resp.status_code == 200
    assert resp.json()["id"] == asha["id"]


@pytest.mark.asyncio
async def test_update_own_profile(client: AsyncClient):
    asha = await signup(client, "Asha")
    resp = await client.put(
        f"/api/v1/auth/profile/{asha['id']}",
        json={"name": "Asha K", "community": ["Powai"]},
        headers=asha["headers"],
    )
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["name"] == "Asha K"
    assert user["community"] == ["Powai"]


@pytest.mark.asyncio
async def test_protected_fields_rejected(client: AsyncClient):
    asha = await signup(client, "Asha")
    resp = await client.put(
        f"/api/v1/auth/profile/{asha['id']}",
        json={"name": "Asha K", "trust_score": 100, "email": "x@example.com"},
        headers=asha["headers"],
    )
    assert resp.status_code == 422
    assert "trust_score" in resp.text

    me = await client.get("/api/v1/auth/me", headers=asha["headers"])
    assert me.json()["trust_score"] == 50
    assert me.json()["name"] == "Asha"


@pytest.mark.asyncio
async def test_cannot_update_someone_elses_profile(client: AsyncClient):
    asha = await signup(client, "Asha")
    bela = await signup(client, "Bela")
    resp = await client.put(
        f"/api/v1/auth/profile/{bela['id']}",
        json={"name": "Hacked"},
        headers=asha["headers"],
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_logout_revokes_token(client: AsyncClient):
    asha = await signup(client, "Asha")
    resp = await client.post("/api/v1/auth/logout", headers=asha["headers"])
    assert resp.status_code == 200

    resp = await client.get("/api/v1/auth/me", headers=asha["headers"])
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Session has been logged out"
