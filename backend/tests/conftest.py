"""
Pytest configuration and fixtures for backend tests.

Repository tests need a migrated Postgres (`alembic upgrade head`) reachable
via DATABASE_URL; they are skipped when it is not set. Route and compiler
tests run without a database.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from uuid import uuid4

# Set test environment variables before importing config
HAS_DATABASE = bool(os.environ.get("DATABASE_URL"))
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from backend import db  # noqa: E402
from backend.main import app  # noqa: E402
from backend.models.user import User  # noqa: E402


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def initialize_pool():
    """Initialize pool once for all database tests."""
    if not HAS_DATABASE:
        pytest.skip("DATABASE_URL not set")
    await db.init_pool()
    yield
    await db.close_pool()


async def _create_user(name: str):
    user_id = uuid4()
    async with db.system_conn() as conn:
        await conn.execute(
            "INSERT INTO users (id, email, name) VALUES ($1, $2, $3)",
            user_id,
            f"test-{user_id}@example.com",
            name,
        )
    return user_id


async def _delete_user(user_id) -> None:
    # workspaces, tables, columns, rows and cells cascade
    async with db.system_conn() as conn:
        await conn.execute("DELETE FROM users WHERE id = $1", user_id)


@pytest_asyncio.fixture(loop_scope="session")
async def test_user_id(initialize_pool):
    """Create a test user and return their ID."""
    user_id = await _create_user("Test User")
    yield user_id
    await _delete_user(user_id)


@pytest_asyncio.fixture(loop_scope="session")
async def second_user_id(initialize_pool):
    """Create a second test user for cross-user RLS tests."""
    user_id = await _create_user("Second Test User")
    yield user_id
    await _delete_user(user_id)


@pytest.fixture
def fake_user():
    """A User that exists only in memory, for routes with a mocked repo."""
    return User(id=uuid4(), email="someone@example.com", name="Someone", created_at=datetime.now(UTC))


@pytest_asyncio.fixture(loop_scope="session")
async def async_client():
    """Async HTTP client against the ASGI app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
