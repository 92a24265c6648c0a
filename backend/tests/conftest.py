"""
CellSync Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Autouse (every test):
    ├── fresh_schema: drops and recreates all tables in the SQLite test DB
    └── reset_notifier: removes live subscriptions left behind by a test

    Function-scoped:
    ├── db_session: real AsyncSession against the SQLite test DB
    ├── mock_db_session: mock AsyncSession for failure injection
    ├── owner_user / other_user / admin_user: authenticated identities
    └── test_client: HTTPX AsyncClient with authentication overridden
"""

import os
import tempfile

# Override settings for testing BEFORE any cellsync imports
_TEST_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="cellsync_test_"), "cellsync_test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB_PATH}"
os.environ["SUPABASE_URL"] = "http://auth.test"
os.environ["SUPABASE_KEY"] = "test-key-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine

from cellsync.database import Base, async_session_factory
from cellsync.models.edit import EditRecord  # noqa: F401
from cellsync.models.spreadsheet import Permission, Spreadsheet  # noqa: F401
from cellsync.schemas.auth import AuthenticatedUser, Role
from cellsync.services.change_notifier import change_notifier


# ══════════════════════════════════════════════════════════════════════════
# Autouse Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def fresh_schema():
    """Empty tables for every test, created with the synchronous sqlite3 driver."""
    sync_engine = create_engine(f"sqlite:///{_TEST_DB_PATH}")
    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    yield


@pytest.fixture(autouse=True)
def reset_notifier():
    yield
    change_notifier.clear()


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_session():
    """
    Real async session on the SQLite test database.

    Usage:
        async def test_append(db_session):
            record = await edit_log_service.append(db_session, "s1", "u1", "A1", "x")
    """
    async with async_session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    Mock async session for injecting driver failures.

    Usage:
        mock_db_session.flush.side_effect = OperationalError("INSERT", {}, Exception())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Identity Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def owner_user():
    return AuthenticatedUser(id="user-owner", email="owner@example.com", role=Role.FREE)


@pytest.fixture
def other_user():
    return AuthenticatedUser(id="user-other", email="other@example.com", role=Role.FREE)


@pytest.fixture
def admin_user():
    return AuthenticatedUser(id="user-admin", email="admin@example.com", role=Role.ADMIN)


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(owner_user):
    """
    HTTPX AsyncClient routed directly to the FastAPI app.

    Bearer verification is overridden to return ``owner_user``; the auth
    provider is never contacted.
    """
    from cellsync.dependencies import get_current_user
    from cellsync.main import app

    app.dependency_overrides[get_current_user] = lambda: owner_user
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
