"""Scheduled event entities.

A ScheduledEvent is a deferred lifecycle transition. It is executed only
when a caller explicitly completes it; scheduled_time is advisory metadata
for operators. Cancelled events are deleted and leave an EventCancellation
record behind.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from src.domain.entities.service_instance import LifecycleAction, LifecycleState, Priority


@dataclass
class ScheduledEvent:
    """A deferred, not-yet-executed transition.

    Domain invariants:
    - once is_completed is True the event is immutable and has produced
      exactly one HistoryEntry (history_entry_id)
    - completed_time is set if and only if is_completed is True

    Attributes:
        service_instance_id: Instance the transition targets
        action: Action to perform when the event is completed
        target_state: State the action leads to (as of scheduling, then as executed)
        created_from_state: Instance state when the event was scheduled
        scheduled_time: Advisory time at which the event should be completed
        assigned_to: User responsible for completing the event
        priority: Event priority
        notified_users: Users to notify about the event
        created_by: User who scheduled the event
        is_completed: Whether the event has been executed
        completed_time: When the event was executed
        completed_by: User who executed the event
        history_entry_id: HistoryEntry produced by completion
        id: Unique identifier of the event
        created_at: When the event was scheduled
    """

    service_instance_id: UUID
    action: LifecycleAction
    target_state: LifecycleState
    created_from_state: LifecycleState
    scheduled_time: datetime | None = None
    assigned_to: str | None = None
    priority: Priority = Priority.MEDIUM
    notified_users: list[str] = field(default_factory=list)
    created_by: str | None = None
    is_completed: bool = False
    completed_time: datetime | None = None
    completed_by: str | None = None
    history_entry_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate scheduled event constraints."""
        if self.is_completed and self.completed_time is None:
            raise ValueError("completed_time is required for a completed event")
        if not self.is_completed and self.completed_time is not None:
            raise ValueError("completed_time must be empty for a pending event")


@dataclass(frozen=True)
class EventCancellation:
    """Record of a cancelled scheduled event.

    Kept in its own log: a cancellation never executes a transition, so it
    does not belong in the instance's history.
    """

    event_id: UUID
    service_instance_id: UUID
    action: LifecycleAction
    cancelled_by: str | None = None
    reason: str | None = None
    id: UUID = field(default_factory=uuid4)
    cancelled_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
