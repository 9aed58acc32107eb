"""Unit of work interface module.

A unit of work groups repository writes into one transaction. The lifecycle
controller relies on it to append a history entry and update the instance's
current state together, or not at all.
"""

from abc import ABC, abstractmethod

from src.domain.repositories.history_repository import HistoryRepositoryInterface
from src.domain.repositories.lifecycle_task_repository import (
    LifecycleTaskRepositoryInterface,
)
from src.domain.repositories.scheduled_event_repository import (
    ScheduledEventRepositoryInterface,
)
from src.domain.repositories.service_instance_repository import (
    ServiceInstanceRepositoryInterface,
)


class LifecycleUnitOfWork(ABC):
    """Transaction boundary over the lifecycle repositories.

    Usage:
        ```python
        async with uow_factory() as uow:
            await uow.instances.compare_and_set_state(...)
            await uow.history.append(...)
            await uow.commit()
        ```

    Leaving the block without commit() rolls back every write made inside
    it. Implementations translate store errors raised inside the block into
    PersistenceFailureError.
    """

    instances: ServiceInstanceRepositoryInterface
    history: HistoryRepositoryInterface
    events: ScheduledEventRepositoryInterface
    tasks: LifecycleTaskRepositoryInterface

    @abstractmethod
    async def __aenter__(self) -> "LifecycleUnitOfWork":
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc, tb) -> None:
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Make every write in this unit of work durable."""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Discard every uncommitted write in this unit of work."""
        pass
