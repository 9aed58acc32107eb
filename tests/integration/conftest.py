"""Integration test fixtures for database testing.

Each test gets a fresh in-memory SQLite database (aiosqlite, one shared
connection, foreign keys enforced) with the full schema created from the
SQLAlchemy metadata.
"""

from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.application.use_cases.event_scheduler import EventScheduler
from src.application.use_cases.history_ledger import HistoryLedger
from src.application.use_cases.lifecycle_controller import LifecycleController
from src.infrastructure.database.config import (
    create_async_db_engine,
    create_async_session_factory,
)
from src.infrastructure.database.models import Base
from src.infrastructure.database.unit_of_work import sqlalchemy_uow_factory

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# Engine is created fresh for each test to avoid event loop issues
@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory database engine with all tables.

    Yields:
        AsyncEngine instance
    """
    engine = create_async_db_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker:
    """Session factory bound to the test engine."""
    return create_async_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for each test.

    Yields:
        AsyncSession instance
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def sql_uow_factory(session_factory: async_sessionmaker):
    """SQLAlchemy unit of work factory over the test database."""
    return sqlalchemy_uow_factory(session_factory)


@pytest.fixture
def sql_controller(sql_uow_factory) -> LifecycleController:
    """Lifecycle controller backed by the test database."""
    return LifecycleController(uow_factory=sql_uow_factory)


@pytest.fixture
def sql_scheduler(sql_uow_factory, sql_controller) -> EventScheduler:
    """Event scheduler backed by the test database."""
    return EventScheduler(uow_factory=sql_uow_factory, controller=sql_controller)


@pytest.fixture
def sql_ledger(sql_uow_factory) -> HistoryLedger:
    """History ledger backed by the test database."""
    return HistoryLedger(uow_factory=sql_uow_factory)
