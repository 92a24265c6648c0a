"""
CellSync Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, FastAPI dependency, and the
       helper that turns driver failures into StoreUnavailable.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system and
       by every service that touches the store.
When:  Engine is created at module import; sessions are created per-request.

Connection Pooling Strategy:
    PostgreSQL (asyncpg):
        pool_size=20, max_overflow=10, pool_pre_ping, pool_recycle=3600
    SQLite (aiosqlite, local runs and tests):
        NullPool; every session opens its own connection, so sessions
        created on different event loops never share a connection.
"""

import logging
from contextlib import contextmanager
from typing import AsyncGenerator, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from cellsync.config import settings
from cellsync.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


# ── Engine Configuration ──────────────────────────────────────────────────
def _engine_options() -> dict:
    if settings.is_sqlite:
        return {"poolclass": NullPool}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
    }


engine = create_async_engine(
    settings.database_url,
    echo=settings.log_level == "DEBUG",
    **_engine_options(),
)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: committed records stay readable after commit,
# which the edit log relies on when it publishes a record post-commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object used by Alembic for migrations and by
    the test suite to create a throwaway schema.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error (or cancellation): rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    A request that is cancelled mid-write therefore never leaves a partial
    record behind.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Error Translation ─────────────────────────────────────────────────────
@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """
    Wrap driver and connection failures raised inside the block as
    StoreUnavailable, tagged with the operation name.

    Usage:
        with store_errors("append_edit"):
            session.add(record)
            await session.flush()

    Application exceptions raised inside the block pass through untouched.
    There is no retry: the caller sees the failure immediately.
    """
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        logger.error("Store operation '%s' failed: %s", operation, str(e))
        raise StoreUnavailable(
            operation=operation,
            context={"error_type": type(e).__name__},
        ) from e


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections. Called during application shutdown."""
    await engine.dispose()
