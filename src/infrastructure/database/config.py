"""Database configuration module.

This module provides database engine and session configuration
for the application with connection pooling and async support.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from weakref import WeakKeyDictionary

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.infrastructure.config import get_settings

# SQLite allows one writer, and in-memory engines share one connection, so
# transactions on a SQLite engine run one at a time.
_connection_locks: "WeakKeyDictionary[Engine, asyncio.Lock]" = WeakKeyDictionary()


def get_database_url() -> str:
    """Get the database URL from settings (DATABASE_URL)."""
    return get_settings().database.url


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_async_db_engine(
    database_url: str | None = None,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    echo: bool = False,
) -> AsyncEngine:
    """Create async SQLAlchemy engine.

    PostgreSQL engines get a sized, pre-pinged connection pool. SQLite
    engines (tests, local runs) use a single shared connection for in-memory
    URLs, enforce foreign keys and serialize transactions (see serialized).

    Args:
        database_url: Connection URL (defaults to DATABASE_URL)
        pool_size: Connection pool size (defaults to DB_POOL_SIZE or 20)
        max_overflow: Burst capacity (defaults to DB_MAX_OVERFLOW or 10)
        echo: Enable SQL query logging

    Returns:
        AsyncEngine instance
    """
    if database_url is None:
        database_url = get_database_url()

    if _is_sqlite(database_url):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.endswith("://"):
            kwargs["poolclass"] = StaticPool
        engine = create_async_engine(database_url, echo=echo, **kwargs)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        _connection_locks[engine.sync_engine] = asyncio.Lock()
        return engine

    db_settings = get_settings().database
    return create_async_engine(
        database_url,
        pool_size=pool_size if pool_size is not None else db_settings.pool_size,
        max_overflow=max_overflow if max_overflow is not None else db_settings.max_overflow,
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=3600,  # Recycle connections every hour
        echo=echo,
    )


def create_async_session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker:
    """Create async session factory.

    Args:
        engine: AsyncEngine instance

    Returns:
        Async session factory (sessionmaker)
    """
    return async_sessionmaker(
        engine,
        expire_on_commit=False,  # Don't expire objects after commit
        autoflush=False,  # Manual flush control
    )


# Global engine and session factory (initialized by application startup)
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker | None = None


async def init_db(
    database_url: str | None = None,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    echo: bool = False,
) -> None:
    """Initialize global database engine and session factory.

    This should be called once during application startup.
    """
    global _engine, _async_session_factory

    _engine = create_async_db_engine(
        database_url=database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        echo=echo,
    )
    _async_session_factory = create_async_session_factory(_engine)


async def dispose_db() -> None:
    """Dispose database engine and close all connections.

    This should be called during application shutdown.
    """
    global _engine, _async_session_factory

    if _engine:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None


def get_engine() -> AsyncEngine:
    """Get global database engine.

    Raises:
        RuntimeError: If database has not been initialized
    """
    if _engine is None:
        raise RuntimeError(
            "Database engine not initialized. Call init_db() first."
        )
    return _engine


def get_session_factory() -> async_sessionmaker:
    """Get global async session factory.

    Raises:
        RuntimeError: If database has not been initialized
    """
    if _async_session_factory is None:
        raise RuntimeError(
            "Database session factory not initialized. Call init_db() first."
        )
    return _async_session_factory


def get_connection_lock(engine: AsyncEngine) -> asyncio.Lock | None:
    """Lock serializing transactions on engine, or None when it needs none."""
    return _connection_locks.get(engine.sync_engine)


@asynccontextmanager
async def serialized(engine: AsyncEngine) -> AsyncIterator[None]:
    """Hold the engine's connection lock, if it has one, for the block."""
    lock = get_connection_lock(engine)
    if lock is None:
        yield
        return
    async with lock:
        yield
