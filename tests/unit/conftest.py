"""Unit test fixtures backed by the in-memory lifecycle store."""

import pytest

from src.application.use_cases.event_scheduler import EventScheduler
from src.application.use_cases.history_ledger import HistoryLedger
from src.application.use_cases.lifecycle_controller import LifecycleController
from src.application.use_cases.task_manager import TaskManager
from src.infrastructure.stores.in_memory_lifecycle_store import (
    InMemoryLifecycleStore,
    in_memory_uow_factory,
)


@pytest.fixture
def store():
    """Create an empty in-memory lifecycle store."""
    return InMemoryLifecycleStore()


@pytest.fixture
def uow_factory(store):
    """Unit of work factory over the in-memory store."""
    return in_memory_uow_factory(store)


@pytest.fixture
def controller(uow_factory):
    """Lifecycle controller with the default transition table."""
    return LifecycleController(uow_factory=uow_factory)


@pytest.fixture
def scheduler(uow_factory, controller):
    """Event scheduler routed through the controller."""
    return EventScheduler(uow_factory=uow_factory, controller=controller)


@pytest.fixture
def task_manager(uow_factory):
    """Task manager over the in-memory store."""
    return TaskManager(uow_factory=uow_factory)


@pytest.fixture
def ledger(uow_factory):
    """History ledger over the in-memory store."""
    return HistoryLedger(uow_factory=uow_factory)
