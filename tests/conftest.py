"""Test fixtures — a fresh SQLite database per test.

Each test gets its own database file under tmp_path with every table
created up front, so tests never see each other's data. The app's get_db
dependency is overridden to hand out sessions on that database, one per
request, exactly like production.

Auth is NOT mocked: make_user signs users up through the service layer and
returns real bearer headers, so every request runs the full token →
Caller → policy path.
"""

import os

# Must be set before taskdesk.config is imported anywhere.
os.environ.setdefault("TASKDESK_ENVIRONMENT", "test")
os.environ.setdefault("TASKDESK_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TASKDESK_JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("TASKDESK_BCRYPT_ROUNDS", "4")
os.environ.setdefault("TASKDESK_CREATE_TABLES", "false")

import uuid
from dataclasses import dataclass, field

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taskdesk.auth.jwt import create_access_token
from taskdesk.db.engine import get_db
from taskdesk.db.models import Base
from taskdesk.main import app
from taskdesk.services.user_service import UserService


@dataclass
class TestUser:
    id: uuid.UUID
    email: str
    password: str
    role: str
    headers: dict = field(default_factory=dict)

    __test__ = False  # not a test class


@pytest.fixture()
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'taskdesk.db'}"


@pytest_asyncio.fixture()
async def engine(db_url):
    engine = create_async_engine(db_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A session for arranging and inspecting data directly."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with the app's get_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def make_user(session_factory):
    """Factory: create a user and return it with ready-to-use auth headers."""

    async def _make(role: str = "user", name: str = "", password: str = "password_123"):
        email = f"{role}-{uuid.uuid4().hex[:8]}@example.com"
        async with session_factory() as db:
            user = await UserService(db).signup(
                name=name or role.title(),
                email=email,
                password=password,
                role=role,
            )
        token = create_access_token(user.id, user.role)
        return TestUser(
            id=user.id,
            email=email,
            password=password,
            role=role,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest_asyncio.fixture()
async def admin(make_user):
    return await make_user(role="admin", name="Admin")


@pytest_asyncio.fixture()
async def user(make_user):
    return await make_user(role="user", name="Regular")
