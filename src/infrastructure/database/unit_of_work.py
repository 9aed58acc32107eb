"""SQLAlchemy unit of work.

One AsyncSession per unit of work; the repositories share it, so everything
staged inside the block commits or rolls back together. On SQLite engines the
whole block holds the engine connection lock.
"""

import asyncio
import logging
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domain.exceptions import PersistenceFailureError
from src.domain.repositories.unit_of_work import LifecycleUnitOfWork
from src.infrastructure.database.config import get_connection_lock
from src.infrastructure.database.repositories.history_repository import (
    HistoryRepository,
)
from src.infrastructure.database.repositories.lifecycle_task_repository import (
    LifecycleTaskRepository,
)
from src.infrastructure.database.repositories.scheduled_event_repository import (
    ScheduledEventRepository,
)
from src.infrastructure.database.repositories.service_instance_repository import (
    ServiceInstanceRepository,
)

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWork(LifecycleUnitOfWork):
    """LifecycleUnitOfWork backed by a single AsyncSession transaction."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self._lock: asyncio.Lock | None = None
        self._committed = False

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        self._session = self._session_factory()
        self._lock = get_connection_lock(self._session.bind)
        if self._lock is not None:
            await self._lock.acquire()
        self._committed = False
        self.instances = ServiceInstanceRepository(self._session)
        self.history = HistoryRepository(self._session)
        self.events = ScheduledEventRepository(self._session)
        self.tasks = LifecycleTaskRepository(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None or not self._committed:
                await self.rollback()
        finally:
            try:
                await self._session.close()
            finally:
                self._session = None
                if self._lock is not None:
                    self._lock.release()
                    self._lock = None

        if isinstance(exc, SQLAlchemyError):
            logger.error(f"Lifecycle store operation failed: {exc}")
            raise PersistenceFailureError(str(exc)) from exc

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to commit lifecycle unit of work: {e}")
            raise PersistenceFailureError(str(e)) from e
        self._committed = True

    async def rollback(self) -> None:
        await self._session.rollback()


def sqlalchemy_uow_factory(
    session_factory: async_sessionmaker,
) -> Callable[[], SqlAlchemyUnitOfWork]:
    """Build a callable that opens a fresh SqlAlchemyUnitOfWork per call."""

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory)

    return factory
