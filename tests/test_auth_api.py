"""Auth tests — signup, signin, and bearer token handling.

Tests cover:
1. Signup + duplicate email prevention + body validation
2. Signin → token carrying id and role
3. Wrong password (401) vs unknown email (404)
4. Protected routes reject missing, malformed and expired tokens
"""

import asyncio
import uuid

import pytest
import structlog

from taskdesk.auth.dependencies import Caller, get_current_user
from taskdesk.auth.jwt import create_access_token, verify_token
from taskdesk.errors import Conflict
from taskdesk.services.user_service import UserService


def _email(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


# ═══════════════════════════════════════════════════════════
# Signup
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signup(client):
    r = await client.post(
        "/api/v1/signup",
        json={"name": "Test User", "email": _email("signup"), "password": "secret1"},
    )
    assert r.status_code == 201
    assert r.json() == {"message": "Signed up"}


@pytest.mark.asyncio
async def test_signup_duplicate_email(client):
    """Can't sign up with the same email twice."""
    body = {"name": "User 1", "email": _email("dup"), "password": "password_123"}

    r1 = await client.post("/api/v1/signup", json=body)
    assert r1.status_code == 201

    r2 = await client.post("/api/v1/signup", json={**body, "name": "User 2"})
    assert r2.status_code == 409
    assert r2.json()["error"] == "Email already exists"


@pytest.mark.asyncio
async def test_concurrent_signups_with_same_email_yield_one_conflict(session_factory):
    """However the two inserts interleave, exactly one account is stored."""
    email = _email("race")

    async def attempt():
        async with session_factory() as db:
            return await UserService(db).signup(
                name="Racer", email=email, password="password_123"
            )

    results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)
    conflicts = [r for r in results if isinstance(r, Conflict)]
    created = [r for r in results if not isinstance(r, Exception)]
    assert len(created) == 1
    assert len(conflicts) == 1


@pytest.mark.asyncio
async def test_signup_short_password(client):
    """Password must be at least 6 characters."""
    r = await client.post(
        "/api/v1/signup",
        json={"name": "Short", "email": _email("short"), "password": "abc"},
    )
    assert r.status_code == 400
    assert isinstance(r.json()["error"], list)


@pytest.mark.asyncio
async def test_signup_invalid_email(client):
    r = await client.post(
        "/api/v1/signup",
        json={"name": "Bad", "email": "not-an-email", "password": "password_123"},
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_signup_unknown_role(client):
    r = await client.post(
        "/api/v1/signup",
        json={
            "name": "Root",
            "email": _email("role"),
            "password": "password_123",
            "role": "superuser",
        },
    )
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Signin
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signin_returns_token_with_identity(client):
    email = _email("signin")
    await client.post(
        "/api/v1/signup",
        json={"name": "Boss", "email": email, "password": "my_password", "role": "admin"},
    )

    r = await client.post(
        "/api/v1/signin", json={"email": email, "password": "my_password"}
    )
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["message"]

    payload = verify_token(data["token"])
    assert payload["role"] == "admin"
    uuid.UUID(payload["id"])
    assert "exp" in payload


@pytest.mark.asyncio
async def test_signin_default_role_is_user(client):
    email = _email("plain")
    await client.post(
        "/api/v1/signup",
        json={"name": "Plain", "email": email, "password": "my_password"},
    )
    r = await client.post(
        "/api/v1/signin", json={"email": email, "password": "my_password"}
    )
    assert verify_token(r.json()["token"])["role"] == "user"


@pytest.mark.asyncio
async def test_signin_wrong_password(client):
    email = _email("wrong")
    await client.post(
        "/api/v1/signup",
        json={"name": "User", "email": email, "password": "correct_password"},
    )

    r = await client.post(
        "/api/v1/signin", json={"email": email, "password": "wrong_password"}
    )
    assert r.status_code == 401
    assert "token" not in r.json()


@pytest.mark.asyncio
async def test_signin_unknown_email(client):
    r = await client.post(
        "/api/v1/signin",
        json={"email": _email("nobody"), "password": "whatever"},
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_signin_missing_password(client):
    r = await client.post("/api/v1/signin", json={"email": _email("nopw")})
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Bearer tokens on protected routes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signed_in_token_works_on_protected_route(client):
    """Full flow: signup → signin → use the token."""
    email = _email("flow")
    await client.post(
        "/api/v1/signup",
        json={"name": "Flow", "email": email, "password": "password_123"},
    )
    r = await client.post(
        "/api/v1/signin", json={"email": email, "password": "password_123"}
    )
    token = r.json()["token"]

    r = await client.get(
        "/api/v1/project", headers={"Authorization": f"Bearer {token}"}
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_protected_route_without_token(client):
    r = await client.get("/api/v1/project")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_protected_route_with_invalid_token(client):
    r = await client.get(
        "/api/v1/tasks", headers={"Authorization": "Bearer invalid_token_here"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_protected_route_with_wrong_scheme(client):
    r = await client.get("/api/v1/tasks", headers={"Authorization": "Basic abc"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_protected_route_with_expired_token(client, user):
    token = create_access_token(user.id, user.role, expires_minutes=-1)
    r = await client.get(
        "/api/v1/project", headers={"Authorization": f"Bearer {token}"}
    )
    assert r.status_code == 401
    assert "expired" in r.json()["details"]


@pytest.mark.asyncio
async def test_authenticated_caller_is_bound_to_log_context(user):
    """Log lines written after auth carry who made the request."""
    structlog.contextvars.clear_contextvars()
    caller = Caller(id=user.id, role=user.role)
    try:
        assert await get_current_user(caller) == caller
        bound = structlog.contextvars.get_contextvars()
        assert bound["user_id"] == str(user.id)
        assert bound["role"] == "user"
    finally:
        structlog.contextvars.clear_contextvars()
