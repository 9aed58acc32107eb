"""Domain entities - Core business objects."""

from src.domain.entities.lifecycle_task import LifecycleTask, TaskStatus
from src.domain.entities.scheduled_event import EventCancellation, ScheduledEvent
from src.domain.entities.service_instance import (
    HistoryEntry,
    LifecycleAction,
    LifecycleState,
    Priority,
    Role,
    ServiceInstance,
)

__all__ = [
    # Lifecycle vocabulary
    "LifecycleState",
    "LifecycleAction",
    "Role",
    "Priority",
    # ServiceInstance and its ledger
    "ServiceInstance",
    "HistoryEntry",
    # Scheduled events
    "ScheduledEvent",
    "EventCancellation",
    # Tasks
    "LifecycleTask",
    "TaskStatus",
]
