"""Scheduled event repository interface module.

Covers pending/completed events and the cancellation log.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from src.domain.entities.scheduled_event import EventCancellation, ScheduledEvent
    from src.domain.entities.service_instance import LifecycleState


class ScheduledEventRepositoryInterface(ABC):
    """Repository interface for ScheduledEvent operations."""

    @abstractmethod
    async def create(self, event: "ScheduledEvent") -> "ScheduledEvent":
        """Persist a new pending event.

        Args:
            event: ScheduledEvent to create

        Returns:
            The created ScheduledEvent
        """
        pass

    @abstractmethod
    async def get_by_id(self, event_id: UUID) -> "ScheduledEvent | None":
        """Get an event by id.

        Args:
            event_id: UUID of the event

        Returns:
            ScheduledEvent if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_pending_for_instance(self, instance_id: UUID) -> list["ScheduledEvent"]:
        """List the pending events of one instance.

        Args:
            instance_id: UUID of the service instance

        Returns:
            Pending events ordered by scheduled_time ascending, unscheduled last
        """
        pass

    @abstractmethod
    async def mark_completed(
        self,
        event_id: UUID,
        target_state: "LifecycleState",
        completed_by: str,
        history_entry_id: UUID,
        completed_time: datetime,
    ) -> "ScheduledEvent | None":
        """Mark a pending event as completed.

        Conditional on the event still being pending.

        Args:
            event_id: UUID of the event
            target_state: State the executed transition produced
            completed_by: User who completed the event
            history_entry_id: HistoryEntry produced by the transition
            completed_time: Completion timestamp

        Returns:
            The completed ScheduledEvent, or None if the event does not exist
            or was already completed
        """
        pass

    @abstractmethod
    async def delete(self, event_id: UUID) -> bool:
        """Hard-delete a pending event.

        Args:
            event_id: UUID of the event

        Returns:
            True if a pending event was deleted, False otherwise
        """
        pass

    @abstractmethod
    async def record_cancellation(self, cancellation: "EventCancellation") -> "EventCancellation":
        """Append a cancellation record.

        Args:
            cancellation: EventCancellation to store

        Returns:
            The stored EventCancellation
        """
        pass

    @abstractmethod
    async def list_cancellations_for_instance(
        self, instance_id: UUID
    ) -> list["EventCancellation"]:
        """List cancellation records of one instance, newest first."""
        pass
