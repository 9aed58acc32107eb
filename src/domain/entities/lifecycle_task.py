"""Lifecycle task entity.

Tasks are ancillary work items attached to a scheduled event. They reference
the event for traceability only: completing a task never requires the event
to be completed, and completing the event never touches its tasks.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from src.domain.entities.service_instance import Priority


class TaskStatus(str, Enum):
    """Status of a lifecycle task."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    BLOCKED = "BLOCKED"
    COMPLETED = "COMPLETED"


@dataclass
class LifecycleTask:
    """A work item tied to a scheduled event.

    Attributes:
        event_id: ScheduledEvent this task belongs to
        title: Short task title
        description: Longer description
        assigned_to: User responsible for the task
        due_date: When the task is due
        priority: Task priority
        status: Current task status
        completed_by: User who completed the task
        completed_at: When the task was completed
        id: Unique identifier of the task
        created_at: When the task was created
    """

    event_id: UUID
    title: str
    description: str | None = None
    assigned_to: str | None = None
    due_date: datetime | None = None
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    completed_by: str | None = None
    completed_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate task constraints."""
        if not self.title or not self.title.strip():
            raise ValueError("title cannot be empty")
        if self.status == TaskStatus.COMPLETED and not self.completed_by:
            raise ValueError("completed_by is required for a completed task")

    @property
    def is_open(self) -> bool:
        """True while the task still needs work."""
        return self.status != TaskStatus.COMPLETED
