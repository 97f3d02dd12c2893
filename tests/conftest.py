"""
Postify Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: Mock AsyncSession for service unit tests
    ├── test_settings:   Settings pointing at a per-test SQLite file
    ├── database:        Database with tables created on that file
    ├── test_client:     HTTPX AsyncClient wired to create_app()
    └── make_user:       Inserts a User row and returns it
"""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.database import Database
from app.main import create_app
from app.models.user import User
from app.security import create_access_token


@pytest.fixture
def auth_headers():
    """Factory fixture: `auth_headers(user)` → Authorization header for `user`."""

    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = post
        result = await post_service.get_post(mock_db_session, post_id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'postify_test.db'}",
        jwt_secret_key="test-secret-not-real",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def database(test_settings) -> AsyncGenerator[Database, None]:
    """A Database on a fresh SQLite file with all tables created."""
    db = Database(test_settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def test_client(test_settings, database) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an async HTTP test client for endpoint testing.

    ASGITransport does not run the lifespan, so the database fixture
    creates the schema instead.
    """
    app = create_app(test_settings, database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def make_user(database):
    """Factory fixture: `await make_user("alice")` inserts and returns a User."""

    async def _make_user(username: str = None) -> User:
        user = User(id=uuid4(), username=username or f"user-{uuid4().hex[:8]}")
        async with database.session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _make_user
