"""
Dependency injection for FastAPI routes.

Provides factory functions for creating use cases with their required dependencies.
Uses FastAPI's Depends() for dependency injection; tests swap the unit of
work factory through app.dependency_overrides[get_uow_factory].
"""

from fastapi import Depends

from src.application.use_cases.event_scheduler import EventScheduler
from src.application.use_cases.history_ledger import HistoryLedger
from src.application.use_cases.lifecycle_controller import (
    LifecycleController,
    UnitOfWorkFactory,
)
from src.application.use_cases.task_manager import TaskManager
from src.domain.services.transition_table import (
    DEFAULT_TRANSITION_TABLE,
    TransitionTable,
)
from src.infrastructure.config import get_settings
from src.infrastructure.database.config import get_session_factory
from src.infrastructure.database.unit_of_work import sqlalchemy_uow_factory


def get_uow_factory() -> UnitOfWorkFactory:
    """Get a unit of work factory over the global session factory."""
    return sqlalchemy_uow_factory(get_session_factory())


def get_transition_table() -> TransitionTable:
    """Get the transition table."""
    return DEFAULT_TRANSITION_TABLE


# Use case factories


def get_lifecycle_controller(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    transition_table: TransitionTable = Depends(get_transition_table),
) -> LifecycleController:
    """Get LifecycleController instance."""
    return LifecycleController(uow_factory=uow_factory, transition_table=transition_table)


def get_event_scheduler(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    controller: LifecycleController = Depends(get_lifecycle_controller),
    transition_table: TransitionTable = Depends(get_transition_table),
) -> EventScheduler:
    """Get EventScheduler instance."""
    return EventScheduler(
        uow_factory=uow_factory,
        controller=controller,
        transition_table=transition_table,
    )


def get_task_manager(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> TaskManager:
    """Get TaskManager instance."""
    return TaskManager(uow_factory=uow_factory)


def get_history_ledger(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    transition_table: TransitionTable = Depends(get_transition_table),
) -> HistoryLedger:
    """Get HistoryLedger instance."""
    return HistoryLedger(
        uow_factory=uow_factory,
        transition_table=transition_table,
        default_history_limit=get_settings().lifecycle.history_default_limit,
    )
