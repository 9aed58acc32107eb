"""In-memory lifecycle store.

Dict-backed implementation of the lifecycle repositories for tests and local
runs. Data is cleared on restart. Units of work are serialized by a single
asyncio.Lock. Writes inside a unit of work are journaled, and a rollback
undoes them in reverse order.
"""

import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from uuid import UUID

from src.domain.entities.lifecycle_task import LifecycleTask
from src.domain.entities.scheduled_event import EventCancellation, ScheduledEvent
from src.domain.entities.service_instance import (
    HistoryEntry,
    LifecycleState,
    ServiceInstance,
)
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
from src.domain.repositories.unit_of_work import LifecycleUnitOfWork

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)
_MISSING = object()


class InMemoryLifecycleStore:
    """Holds every lifecycle record of one process."""

    def __init__(self):
        self.instances: dict[UUID, ServiceInstance] = {}
        self.history: list[HistoryEntry] = []  # append-only, oldest first
        self.events: dict[UUID, ScheduledEvent] = {}
        self.cancellations: list[EventCancellation] = []
        self.tasks: dict[UUID, LifecycleTask] = {}
        self.lock = asyncio.Lock()
        self._journal: list[Callable[[], None]] | None = None

    def begin(self) -> None:
        self._journal = []

    def end(self, keep: bool) -> None:
        """Close the journal, undoing its writes unless keep is set."""
        journal, self._journal = self._journal or [], None
        if not keep:
            for undo in reversed(journal):
                undo()

    def put(self, records: dict, key, value) -> None:
        previous = records.get(key, _MISSING)
        records[key] = value
        self._remember(lambda: _reset(records, key, previous))

    def remove(self, records: dict, key) -> None:
        previous = records.pop(key)
        self._remember(lambda: records.__setitem__(key, previous))

    def append(self, records: list, item) -> None:
        records.append(item)
        self._remember(records.pop)

    def _remember(self, undo: Callable[[], None]) -> None:
        if self._journal is not None:
            self._journal.append(undo)

    def clear(self) -> None:
        """Drop all records."""
        self.instances = {}
        self.history = []
        self.events = {}
        self.cancellations = []
        self.tasks = {}


def _reset(records: dict, key, previous) -> None:
    if previous is _MISSING:
        records.pop(key, None)
    else:
        records[key] = previous


class InMemoryServiceInstanceRepository(ServiceInstanceRepositoryInterface):
    def __init__(self, store: InMemoryLifecycleStore):
        self._store = store

    async def get_by_id(self, instance_id: UUID) -> ServiceInstance | None:
        instance = self._store.instances.get(instance_id)
        return replace(instance) if instance else None

    async def create(self, instance: ServiceInstance) -> ServiceInstance:
        if instance.id in self._store.instances:
            raise ValueError(f"ServiceInstance with id '{instance.id}' already exists")
        self._store.put(self._store.instances, instance.id, replace(instance))
        return replace(instance)

    async def compare_and_set_state(
        self,
        instance_id: UUID,
        expected_state: LifecycleState,
        new_state: LifecycleState,
    ) -> ServiceInstance | None:
        instance = self._store.instances.get(instance_id)
        if instance is None or instance.current_state != expected_state:
            return None
        updated = replace(
            instance,
            current_state=LifecycleState(new_state),
            version=instance.version + 1,
            updated_at=datetime.now(timezone.utc),
        )
        self._store.put(self._store.instances, instance_id, updated)
        return replace(updated)


class InMemoryHistoryRepository(HistoryRepositoryInterface):
    def __init__(self, store: InMemoryLifecycleStore):
        self._store = store

    async def append(self, entry: HistoryEntry) -> HistoryEntry:
        self._store.append(self._store.history, entry)
        return entry

    async def list_for_instance(
        self, instance_id: UUID, limit: int | None = None
    ) -> list[HistoryEntry]:
        entries = [
            e for e in reversed(self._store.history) if e.service_instance_id == instance_id
        ]
        return entries[:limit] if limit is not None else entries


class InMemoryScheduledEventRepository(ScheduledEventRepositoryInterface):
    def __init__(self, store: InMemoryLifecycleStore):
        self._store = store

    async def create(self, event: ScheduledEvent) -> ScheduledEvent:
        self._store.put(
            self._store.events, event.id, replace(event, notified_users=list(event.notified_users))
        )
        return replace(event)

    async def get_by_id(self, event_id: UUID) -> ScheduledEvent | None:
        event = self._store.events.get(event_id)
        return replace(event) if event else None

    async def list_pending_for_instance(self, instance_id: UUID) -> list[ScheduledEvent]:
        pending = [
            replace(e)
            for e in self._store.events.values()
            if e.service_instance_id == instance_id and not e.is_completed
        ]
        return sorted(
            pending,
            key=lambda e: (
                e.scheduled_time is None,
                e.scheduled_time or _FAR_FUTURE,
                e.created_at,
            ),
        )

    async def mark_completed(
        self,
        event_id: UUID,
        target_state: LifecycleState,
        completed_by: str,
        history_entry_id: UUID,
        completed_time: datetime,
    ) -> ScheduledEvent | None:
        event = self._store.events.get(event_id)
        if event is None or event.is_completed:
            return None
        completed = replace(
            event,
            is_completed=True,
            target_state=LifecycleState(target_state),
            completed_by=completed_by,
            history_entry_id=history_entry_id,
            completed_time=completed_time,
        )
        self._store.put(self._store.events, event_id, completed)
        return replace(completed)

    async def delete(self, event_id: UUID) -> bool:
        event = self._store.events.get(event_id)
        if event is None or event.is_completed:
            return False
        self._store.remove(self._store.events, event_id)
        for task_id in [t.id for t in self._store.tasks.values() if t.event_id == event_id]:
            self._store.remove(self._store.tasks, task_id)
        return True

    async def record_cancellation(self, cancellation: EventCancellation) -> EventCancellation:
        self._store.append(self._store.cancellations, cancellation)
        return cancellation

    async def list_cancellations_for_instance(
        self, instance_id: UUID
    ) -> list[EventCancellation]:
        return [
            c for c in reversed(self._store.cancellations) if c.service_instance_id == instance_id
        ]


class InMemoryLifecycleTaskRepository(LifecycleTaskRepositoryInterface):
    def __init__(self, store: InMemoryLifecycleStore):
        self._store = store

    async def create(self, task: LifecycleTask) -> LifecycleTask:
        self._store.put(self._store.tasks, task.id, replace(task))
        return replace(task)

    async def get_by_id(self, task_id: UUID) -> LifecycleTask | None:
        task = self._store.tasks.get(task_id)
        return replace(task) if task else None

    async def update(self, task: LifecycleTask) -> LifecycleTask:
        if task.id not in self._store.tasks:
            raise ValueError(f"LifecycleTask with id '{task.id}' does not exist")
        self._store.put(self._store.tasks, task.id, replace(task))
        return replace(task)

    async def list_open_for_instance(self, instance_id: UUID) -> list[LifecycleTask]:
        event_ids = {
            e.id for e in self._store.events.values() if e.service_instance_id == instance_id
        }
        open_tasks = [
            replace(t)
            for t in self._store.tasks.values()
            if t.event_id in event_ids and t.is_open
        ]
        return sorted(
            open_tasks,
            key=lambda t: (t.due_date is None, t.due_date or _FAR_FUTURE, t.created_at),
        )

    async def list_for_event(self, event_id: UUID) -> list[LifecycleTask]:
        tasks = [replace(t) for t in self._store.tasks.values() if t.event_id == event_id]
        return sorted(tasks, key=lambda t: t.created_at)


class InMemoryUnitOfWork(LifecycleUnitOfWork):
    """Unit of work over an InMemoryLifecycleStore.

    Holds the store lock for the whole block, so units of work run one at a
    time. Each commit keeps the writes journaled since the previous one.
    """

    def __init__(self, store: InMemoryLifecycleStore):
        self._store = store
        self._committed = False
        self.instances = InMemoryServiceInstanceRepository(store)
        self.history = InMemoryHistoryRepository(store)
        self.events = InMemoryScheduledEventRepository(store)
        self.tasks = InMemoryLifecycleTaskRepository(store)

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        await self._store.lock.acquire()
        self._store.begin()
        self._committed = False
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None or not self._committed:
                await self.rollback()
        finally:
            self._store.end(keep=True)
            self._store.lock.release()

    async def commit(self) -> None:
        self._store.end(keep=True)
        self._store.begin()
        self._committed = True

    async def rollback(self) -> None:
        self._store.end(keep=False)
        self._store.begin()


def in_memory_uow_factory(store: InMemoryLifecycleStore):
    """Build a callable that opens a fresh InMemoryUnitOfWork per call."""

    def factory() -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(store)

    return factory
