"""Scheduled event repository implementation using SQLAlchemy.

Completion and deletion are conditional on the event still being pending,
so a completed event can never be completed twice or cancelled.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities.scheduled_event import EventCancellation, ScheduledEvent
from src.domain.entities.service_instance import (
    LifecycleAction,
    LifecycleState,
    Priority,
)
from src.domain.repositories.scheduled_event_repository import (
    ScheduledEventRepositoryInterface,
)
from src.infrastructure.database.models import (
    EventCancellationModel,
    ScheduledEventModel,
    as_utc,
)


class ScheduledEventRepository(ScheduledEventRepositoryInterface):
    """SQLAlchemy implementation of ScheduledEventRepositoryInterface."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session
        """
        self._session = session

    async def create(self, event: ScheduledEvent) -> ScheduledEvent:
        """Insert a pending event."""
        model = self._to_model(event)
        self._session.add(model)
        await self._session.flush()

        return self._to_entity(model)

    async def get_by_id(self, event_id: UUID) -> ScheduledEvent | None:
        """Get an event by id.

        Args:
            event_id: UUID of the event

        Returns:
            ScheduledEvent if found, None otherwise
        """
        stmt = (
            select(ScheduledEventModel)
            .where(ScheduledEventModel.id == event_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        return self._to_entity(model) if model else None

    async def list_pending_for_instance(self, instance_id: UUID) -> list[ScheduledEvent]:
        """List pending events, soonest first, unscheduled last.

        Args:
            instance_id: UUID of the service instance

        Returns:
            List of pending ScheduledEvent entities
        """
        stmt = (
            select(ScheduledEventModel)
            .where(
                ScheduledEventModel.service_instance_id == instance_id,
                ScheduledEventModel.is_completed.is_(False),
            )
            .order_by(
                ScheduledEventModel.scheduled_time.asc().nulls_last(),
                ScheduledEventModel.created_at.asc(),
            )
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def mark_completed(
        self,
        event_id: UUID,
        target_state: LifecycleState,
        completed_by: str,
        history_entry_id: UUID,
        completed_time: datetime,
    ) -> ScheduledEvent | None:
        """Mark a pending event completed.

        Returns:
            The completed ScheduledEvent, or None if no pending event matched
        """
        stmt = (
            update(ScheduledEventModel)
            .where(
                ScheduledEventModel.id == event_id,
                ScheduledEventModel.is_completed.is_(False),
            )
            .values(
                is_completed=True,
                target_state=LifecycleState(target_state).value,
                completed_by=completed_by,
                history_entry_id=history_entry_id,
                completed_time=as_utc(completed_time),
            )
            .returning(ScheduledEventModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.scalar_one_or_none() is None:
            return None

        return await self.get_by_id(event_id)

    async def delete(self, event_id: UUID) -> bool:
        """Hard-delete a pending event; its tasks go with it.

        Returns:
            True if a pending event was deleted, False otherwise
        """
        stmt = (
            delete(ScheduledEventModel)
            .where(
                ScheduledEventModel.id == event_id,
                ScheduledEventModel.is_completed.is_(False),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def record_cancellation(self, cancellation: EventCancellation) -> EventCancellation:
        """Insert a cancellation record."""
        model = EventCancellationModel(
            id=cancellation.id,
            event_id=cancellation.event_id,
            service_instance_id=cancellation.service_instance_id,
            action=cancellation.action.value,
            cancelled_by=cancellation.cancelled_by,
            reason=cancellation.reason,
            cancelled_at=as_utc(cancellation.cancelled_at),
        )
        self._session.add(model)
        await self._session.flush()

        return self._cancellation_to_entity(model)

    async def list_cancellations_for_instance(
        self, instance_id: UUID
    ) -> list[EventCancellation]:
        """List cancellation records of one instance, newest first."""
        stmt = (
            select(EventCancellationModel)
            .where(EventCancellationModel.service_instance_id == instance_id)
            .order_by(EventCancellationModel.cancelled_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._cancellation_to_entity(m) for m in result.scalars().all()]

    def _to_entity(self, model: ScheduledEventModel) -> ScheduledEvent:
        """Convert SQLAlchemy model to domain entity."""
        return ScheduledEvent(
            id=model.id,
            service_instance_id=model.service_instance_id,
            action=LifecycleAction(model.action),
            target_state=LifecycleState(model.target_state),
            created_from_state=LifecycleState(model.created_from_state),
            scheduled_time=as_utc(model.scheduled_time),
            assigned_to=model.assigned_to,
            priority=Priority(model.priority),
            notified_users=list(model.notified_users or []),
            created_by=model.created_by,
            is_completed=model.is_completed,
            completed_time=as_utc(model.completed_time),
            completed_by=model.completed_by,
            history_entry_id=model.history_entry_id,
            created_at=as_utc(model.created_at),
        )

    def _to_model(self, entity: ScheduledEvent) -> ScheduledEventModel:
        """Convert domain entity to SQLAlchemy model."""
        return ScheduledEventModel(
            id=entity.id,
            service_instance_id=entity.service_instance_id,
            action=entity.action.value,
            target_state=entity.target_state.value,
            created_from_state=entity.created_from_state.value,
            scheduled_time=as_utc(entity.scheduled_time),
            assigned_to=entity.assigned_to,
            priority=entity.priority.value,
            notified_users=list(entity.notified_users),
            created_by=entity.created_by,
            is_completed=entity.is_completed,
            completed_time=as_utc(entity.completed_time),
            completed_by=entity.completed_by,
            history_entry_id=entity.history_entry_id,
            created_at=as_utc(entity.created_at),
        )

    @staticmethod
    def _cancellation_to_entity(model: EventCancellationModel) -> EventCancellation:
        return EventCancellation(
            id=model.id,
            event_id=model.event_id,
            service_instance_id=model.service_instance_id,
            action=LifecycleAction(model.action),
            cancelled_by=model.cancelled_by,
            reason=model.reason,
            cancelled_at=as_utc(model.cancelled_at),
        )
