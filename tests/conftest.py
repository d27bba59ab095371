"""
Shared test fixtures for the Workforce Attendance test suite.

Each test gets its own in-memory aiosqlite database wired into the app
through the ``get_db`` dependency override.
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["TIMEZONE_OFFSET"] = "+00:00"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from workforce.api.v1.deps import get_db
from workforce.api.v1.endpoints.auth import limiter
from workforce.core.security import create_access_token
from workforce.db.session import Database
from workforce.main import app
from workforce.models.user import User

# Rate limits are exercised separately; keep them out of the way otherwise
limiter.enabled = False


@pytest.fixture(autouse=True)
async def database() -> AsyncGenerator[Database, None]:
    """Fresh schema per test, injected in place of the app's database."""
    db = Database(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await db.create_all()
    app.dependency_overrides[get_db] = db.session

    yield db

    app.dependency_overrides.pop(get_db, None)
    await db.dispose()


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Insert a user directly; returns the persisted row."""
    counter = {"n": 0}

    async def _make(
        role: str = "Employee",
        department: str | None = "Sales",
        name: str | None = None,
        status: str = "Approved",
        email: str | None = None,
        hashed_password: str = "not-a-real-hash",
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"{role} {n}",
            email=email or f"{role.lower()}{n}@example.com",
            hashed_password=hashed_password,
            role=role,
            department=department,
            status=status,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, role=user.role)
    return {"Authorization": f"Bearer {token}"}
