"""DTOs for the service lifecycle engine."""

from dataclasses import dataclass, field
from uuid import UUID

from src.domain.entities.lifecycle_task import LifecycleTask
from src.domain.entities.scheduled_event import ScheduledEvent
from src.domain.entities.service_instance import (
    HistoryEntry,
    LifecycleAction,
    LifecycleState,
    Role,
    ServiceInstance,
)


@dataclass
class ActingIdentity:
    """Who is performing a mutating call, as supplied by the identity provider."""

    user_id: str
    role: Role

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id cannot be empty")


@dataclass
class TransitionResult:
    """Outcome of a committed transition."""

    instance: ServiceInstance
    previous_state: LifecycleState
    new_state: LifecycleState
    action: LifecycleAction
    history_entry: HistoryEntry


@dataclass
class EventCompletionResult:
    """Outcome of completing a scheduled event."""

    event: ScheduledEvent
    transition: TransitionResult


@dataclass
class LifecycleOverview:
    """Everything a consumer needs to render one instance's lifecycle view."""

    service_instance_id: UUID
    current_state: LifecycleState
    valid_actions: list[LifecycleAction] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    pending_events: list[ScheduledEvent] = field(default_factory=list)
    pending_tasks: list[LifecycleTask] = field(default_factory=list)
    is_terminal: bool = False
