import asyncio
import uuid

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from shortlet.core.config import settings
from shortlet.db import crud_users


def login(client, email, password="secret-password"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


@pytest.fixture
def admin(client):
    """Admins cannot self-register, so one is written straight to the database."""
    email = f"admin-{uuid.uuid4().hex[:8]}@example.com"

    async def make():
        engine = create_async_engine(settings.DATABASE_URL)
        try:
            async with async_sessionmaker(engine, expire_on_commit=False)() as db:
                await crud_users.create_user(db, "Ada Admin", email, "secret-password", role="admin")
        finally:
            await engine.dispose()

    asyncio.run(make())
    res = login(client, email)
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


def test_register_login_and_me(client, guest):
    headers, user = guest
    assert user["role"] == "user"
    assert "password" not in user and "hashed_password" not in user

    res = login(client, user["email"])
    assert res.status_code == 200
    assert res.json()["token_type"] == "bearer"

    me = client.get("/api/users/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["email"] == user["email"]


def test_duplicate_email(client, guest):
    res = client.post(
        "/api/auth/register",
        json={"name": "Copy Cat", "email": guest[1]["email"], "password": "another-password"},
    )
    assert res.status_code == 409
    assert res.json()["error"]["kind"] == "conflict"


def test_cannot_self_register_as_admin(client):
    res = client.post(
        "/api/auth/register",
        json={"name": "Sneaky", "email": "sneaky@example.com", "password": "secret-password", "role": "admin"},
    )
    assert res.status_code == 400


def test_bad_password(client, guest):
    res = login(client, guest[1]["email"], "wrong-password")
    assert res.status_code == 401
    assert res.json()["error"]["kind"] == "auth_error"


@pytest.mark.parametrize("header", [
    {},
    {"Authorization": "Bearer not-a-jwt"},
])
def test_me_requires_valid_token(client, header):
    res = client.get("/api/users/me", headers=header)
    assert res.status_code == 401
    assert res.json()["error"]["kind"] == "auth_error"


def test_refresh(client, signup):
    _, user = signup("agent", "Remy Refresh")
    tokens = login(client, user["email"]).json()

    res = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 200
    assert res.json()["user"]["id"] == user["id"]

    # an access token is not a refresh token
    res = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert res.status_code == 401


def test_admin_endpoints_reject_non_admins(client, guest, agent):
    for headers in (guest[0], agent[0]):
        assert client.get("/api/admin/overview", headers=headers).status_code == 403
        assert client.get("/api/admin/users", headers=headers).status_code == 403


def test_admin_overview_and_users(client, admin, guest, agent):
    overview = client.get("/api/admin/overview", headers=admin).json()
    assert set(overview) == {"users", "agents", "properties", "bookings"}
    assert overview["users"] >= 1 and overview["agents"] >= 1

    page = client.get("/api/admin/users", headers=admin, params={"role": "agent", "per_page": 100}).json()
    assert agent[1]["id"] in {u["id"] for u in page["items"]}
    assert all(u["role"] == "agent" for u in page["items"])


def test_admin_changes_role_and_deactivates(client, admin, guest):
    headers, user = guest

    res = client.put(f"/api/admin/users/{user['id']}/role", headers=admin, json={"role": "agent"})
    assert res.status_code == 200
    assert res.json()["role"] == "agent"
    # role is read from the database, so the old token already carries it
    assert client.get("/api/agent/properties", headers=headers).status_code == 200

    res = client.put(f"/api/admin/users/{user['id']}/deactivate", headers=admin)
    assert res.json()["is_active"] is False
    assert client.get("/api/users/me", headers=headers).status_code == 401
    assert login(client, user["email"]).status_code == 401

    assert client.put("/api/admin/users/999999/deactivate", headers=admin).status_code == 404


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_admin_lists_and_deactivates_properties(client, admin, agent, listing):
    res = client.put(f"/api/admin/properties/{listing['id']}/deactivate", headers=admin)
    assert res.status_code == 200
    assert res.json()["is_active"] is False

    page = client.get("/api/admin/properties", headers=admin, params={"per_page": 100}).json()
    assert page["total"] >= 1
    moderated = {p["id"]: p for p in page["items"]}
    # inactive properties stay visible to admins
    assert moderated[listing["id"]]["is_active"] is False
    assert moderated[listing["id"]]["owner"]["id"] == agent[1]["id"]

    ids = [p["id"] for p in page["items"]]
    assert ids == sorted(ids, reverse=True)

    public = client.get(f"/api/properties/{listing['id']}").json()
    assert public["is_active"] is False
    assert client.put("/api/admin/properties/999999/deactivate", headers=admin).status_code == 404


def test_property_moderation_is_admin_only(client, agent, listing):
    assert client.get("/api/admin/properties", headers=agent[0]).status_code == 403
    res = client.put(f"/api/admin/properties/{listing['id']}/deactivate", headers=agent[0])
    assert res.status_code == 403
