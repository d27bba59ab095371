"""Tests for registration, login, token refresh and user approval."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import auth_headers
from workforce.core.security import (create_refresh_token, decode_access_token,
                                     get_password_hash)
from workforce.models.user import User


async def _user_with_password(
    db: AsyncSession, email: str, password: str, role: str = "Employee", status: str = "Approved"
) -> User:
    user = User(
        name="Login Tester",
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        department=None if role == "Admin" else "Design",
        status=status,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.mark.asyncio
async def test_register_starts_pending(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/register", json={
        "name": "New Hire",
        "email": "  New.Hire@Example.com ",
        "password": "secret123",
        "role": "Employee",
        "department": "Marketing",
    })
    assert resp.status_code == 201
    assert resp.json()["status"] == "Pending"

    dup = await async_client.post("/api/v1/auth/register", json={
        "name": "Again",
        "email": "new.hire@example.com",
        "password": "secret123",
        "role": "Employee",
        "department": "Marketing",
    })
    assert dup.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"role": "Admin", "department": None},
        {"role": "Employee", "department": None},
        {"role": "Employee", "department": "Finance"},
        {"role": "Intern", "department": "Sales"},
    ],
)
async def test_register_rejects_invalid_accounts(async_client: AsyncClient, payload: dict):
    body = {"name": "X", "email": "x@example.com", "password": "secret123", **payload}
    resp = await async_client.post("/api/v1/auth/register", json=body)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_login_sets_httponly_cookies(async_client: AsyncClient, db_session: AsyncSession):
    user = await _user_with_password(db_session, "cookie@test.com", "password123")

    response = await async_client.post(
        "/api/v1/auth/login", data={"username": "cookie@test.com", "password": "password123"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "Employee"
    assert decode_access_token(data["access_token"])["sub"] == str(user.id)

    assert "access_token" in response.cookies
    assert "refresh_token" in response.cookies
    set_cookie = response.headers.get("set-cookie")
    assert "HttpOnly" in set_cookie
    assert "SameSite=lax" in set_cookie


@pytest.mark.asyncio
async def test_login_wrong_password(async_client: AsyncClient, db_session: AsyncSession):
    await _user_with_password(db_session, "wrong@test.com", "password123")
    resp = await async_client.post(
        "/api/v1/auth/login", data={"username": "wrong@test.com", "password": "nope-nope"}
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_blocked_until_approved(async_client: AsyncClient, db_session: AsyncSession):
    await _user_with_password(db_session, "pending@test.com", "password123", status="Pending")
    resp = await async_client.post(
        "/api/v1/auth/login", data={"username": "pending@test.com", "password": "password123"}
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_login_ignores_status(async_client: AsyncClient, db_session: AsyncSession):
    await _user_with_password(
        db_session, "boss@test.com", "password123", role="Admin", status="Pending"
    )
    resp = await async_client.post(
        "/api/v1/auth/login", data={"username": "boss@test.com", "password": "password123"}
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_refresh_token_flow(async_client: AsyncClient, make_user):
    user = await make_user()
    resp = await async_client.post(
        "/api/v1/auth/refresh", json={"refresh_token": create_refresh_token(user.id)}
    )
    assert resp.status_code == 200
    assert resp.json()["access_token"]

    bad = await async_client.post("/api/v1/auth/refresh", json={"refresh_token": "garbage"})
    assert bad.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token_is_not_an_access_token(async_client: AsyncClient, make_user):
    user = await make_user()
    headers = {"Authorization": f"Bearer {create_refresh_token(user.id)}"}
    resp = await async_client.get("/api/v1/auth/me", headers=headers)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_me(async_client: AsyncClient, make_user):
    user = await make_user(role="Manager", department="HR", name="Harriet")
    resp = await async_client.get("/api/v1/auth/me", headers=auth_headers(user))
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Harriet"
    assert data["department"] == "HR"


@pytest.mark.asyncio
async def test_admin_approves_registration(async_client: AsyncClient, make_user):
    admin = await make_user(role="Admin", department=None)
    pending = await make_user(status="Pending")

    resp = await async_client.patch(
        f"/api/v1/auth/users/{pending.id}/status",
        json={"status": "Approved"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "Approved"

    me = await async_client.get("/api/v1/auth/me", headers=auth_headers(pending))
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_only_admin_manages_users(async_client: AsyncClient, make_user):
    manager = await make_user(role="Manager", department="Sales")
    resp = await async_client.post(
        "/api/v1/auth/users",
        json={
            "name": "Sneaky",
            "email": "sneaky@example.com",
            "password": "secret123",
            "role": "Admin",
        },
        headers=auth_headers(manager),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_creates_approved_user(async_client: AsyncClient, make_user):
    admin = await make_user(role="Admin", department=None)
    resp = await async_client.post(
        "/api/v1/auth/users",
        json={
            "name": "Dana",
            "email": "dana@example.com",
            "password": "secret123",
            "role": "Manager",
            "department": "Development",
        },
        headers=auth_headers(admin),
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "Approved"
    assert data["role"] == "Manager"


@pytest.mark.asyncio
async def test_status_update_unknown_user(async_client: AsyncClient, make_user):
    admin = await make_user(role="Admin", department=None)
    resp = await async_client.patch(
        "/api/v1/auth/users/9999/status",
        json={"status": "Rejected"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_admin_lists_pending_registrations(async_client: AsyncClient, make_user):
    admin = await make_user(role="Admin", department=None)
    await make_user(name="Approved Amy")
    waiting = await make_user(name="Pending Pat", status="Pending", department="HR")
    await make_user(name="Pending Manager", role="Manager", status="Pending", department="Sales")

    resp = await async_client.get("/api/v1/auth/users?status=Pending", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert {u["name"] for u in resp.json()} == {"Pending Pat", "Pending Manager"}

    resp = await async_client.get(
        "/api/v1/auth/users?status=Pending&department=HR", headers=auth_headers(admin)
    )
    assert [u["id"] for u in resp.json()] == [waiting.id]

    resp = await async_client.get("/api/v1/auth/users?role=Admin", headers=auth_headers(admin))
    assert [u["id"] for u in resp.json()] == [admin.id]

    resp = await async_client.get("/api/v1/auth/users", headers=auth_headers(admin))
    assert len(resp.json()) == 4


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["status=Maybe", "role=Intern", "department=Finance"])
async def test_user_listing_rejects_unknown_filters(async_client: AsyncClient, make_user, query: str):
    admin = await make_user(role="Admin", department=None)
    resp = await async_client.get(f"/api/v1/auth/users?{query}", headers=auth_headers(admin))
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_user_listing_is_admin_only(async_client: AsyncClient, make_user):
    manager = await make_user(role="Manager", department="Sales")
    resp = await async_client.get("/api/v1/auth/users", headers=auth_headers(manager))
    assert resp.status_code == 403
