"""Event scheduler use case.

Scheduled events are deferred transitions. Creating one only validates that
the action is defined from the state the caller sees today; completing one
re-reads the instance's live state and routes through the lifecycle
controller, so an event can never force a transition that has become illegal.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from src.application.dtos.lifecycle_dto import EventCompletionResult
from src.application.use_cases.lifecycle_controller import (
    LifecycleController,
    UnitOfWorkFactory,
)
from src.domain.entities.scheduled_event import EventCancellation, ScheduledEvent
from src.domain.entities.service_instance import (
    LifecycleAction,
    LifecycleState,
    Priority,
    Role,
)
from src.domain.exceptions import InvalidTransitionError, NotFoundError
from src.domain.services.transition_table import (
    DEFAULT_TRANSITION_TABLE,
    TransitionTable,
)
from src.infrastructure.observability.metrics import record_scheduled_event_operation

logger = logging.getLogger(__name__)


class EventScheduler:
    """Create, complete and cancel scheduled events."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        controller: LifecycleController,
        transition_table: TransitionTable = DEFAULT_TRANSITION_TABLE,
    ):
        self.uow_factory = uow_factory
        self.controller = controller
        self.transition_table = transition_table

    async def create_event(
        self,
        service_instance_id: UUID,
        current_state: LifecycleState,
        action: LifecycleAction,
        scheduled_time: datetime | None = None,
        assigned_to: str | None = None,
        priority: Priority = Priority.MEDIUM,
        created_by: str | None = None,
        notified_users: list[str] | None = None,
    ) -> ScheduledEvent:
        """Persist a pending event for a future transition.

        Touches neither the history nor the instance's current state.

        Args:
            service_instance_id: Instance the event targets
            current_state: State the caller observed when scheduling
            action: Action to perform on completion
            scheduled_time: Advisory completion time
            assigned_to: User responsible for completing the event
            priority: Event priority
            created_by: User scheduling the event
            notified_users: Users to notify about the event

        Returns:
            The created pending ScheduledEvent

        Raises:
            InvalidTransitionError: If action is not defined from current_state
            NotFoundError: If the instance does not exist
        """
        rule = self.transition_table.rule_for(current_state, action)
        if rule is None:
            raise InvalidTransitionError(
                current_state, action, "cannot schedule an undefined transition"
            )

        event = ScheduledEvent(
            service_instance_id=service_instance_id,
            action=rule.action,
            target_state=rule.to_state,
            created_from_state=rule.from_state,
            scheduled_time=scheduled_time,
            assigned_to=assigned_to,
            priority=Priority(priority),
            notified_users=list(notified_users or []),
            created_by=created_by,
        )

        async with self.uow_factory() as uow:
            instance = await uow.instances.get_by_id(service_instance_id)
            if instance is None:
                raise NotFoundError("ServiceInstance", service_instance_id)
            created = await uow.events.create(event)
            await uow.commit()

        logger.info(
            f"Scheduled {rule.action.value} on {service_instance_id} "
            f"(event={created.id}, scheduled_time={scheduled_time}, "
            f"priority={created.priority.value})"
        )
        self._record_metric("created")
        return created

    async def complete_event(
        self,
        event_id: UUID,
        acting_user_id: str,
        acting_role: Role,
        comments: str | None = None,
    ) -> EventCompletionResult:
        """Execute a pending event's transition against the live state.

        The transition, its history entry and the event's completion commit
        together. On any failure the event stays pending.

        Raises:
            NotFoundError: If the event or its instance does not exist
            InvalidTransitionError: If the event is already completed, or its
                action is not legal from the instance's live state
            UnauthorizedTransitionError: If acting_role may not perform the action
            ConcurrencyConflictError: If the instance moved between read and write
        """
        async with self.uow_factory() as uow:
            event = await uow.events.get_by_id(event_id)
            if event is None:
                raise NotFoundError("ScheduledEvent", event_id)
            if event.is_completed:
                raise InvalidTransitionError(
                    event.target_state, event.action, "event already completed"
                )

            instance = await uow.instances.get_by_id(event.service_instance_id)
            if instance is None:
                raise NotFoundError("ServiceInstance", event.service_instance_id)

            if instance.current_state != event.created_from_state:
                logger.info(
                    f"Event {event_id} was scheduled from {event.created_from_state.value}; "
                    f"instance is now {instance.current_state.value}"
                )

            transition, rule = await self.controller.apply_transition(
                uow,
                service_instance_id=instance.id,
                expected_current_state=instance.current_state,
                action=event.action,
                acting_user_id=acting_user_id,
                acting_role=acting_role,
                comments=comments,
            )

            completed = await uow.events.mark_completed(
                event_id,
                target_state=transition.new_state,
                completed_by=acting_user_id,
                history_entry_id=transition.history_entry.id,
                completed_time=datetime.now(timezone.utc),
            )
            if completed is None:
                raise InvalidTransitionError(
                    event.target_state, event.action, "event already completed"
                )
            await uow.commit()

        await self.controller.after_commit(transition, rule)
        logger.info(f"Completed event {event_id} by {acting_user_id}")
        self._record_metric("completed")
        return EventCompletionResult(event=completed, transition=transition)

    async def cancel_event(
        self,
        event_id: UUID,
        reason: str | None = None,
        cancelled_by: str | None = None,
    ) -> EventCancellation:
        """Delete a pending event and record why.

        No history entry is produced. The reason is kept in the cancellation
        log.

        Raises:
            NotFoundError: If the event does not exist
            InvalidTransitionError: If the event is already completed
        """
        async with self.uow_factory() as uow:
            event = await uow.events.get_by_id(event_id)
            if event is None:
                raise NotFoundError("ScheduledEvent", event_id)
            if event.is_completed:
                raise InvalidTransitionError(
                    event.target_state, event.action, "completed events cannot be cancelled"
                )

            if not await uow.events.delete(event_id):
                raise NotFoundError("ScheduledEvent", event_id)
            cancellation = await uow.events.record_cancellation(
                EventCancellation(
                    event_id=event.id,
                    service_instance_id=event.service_instance_id,
                    action=event.action,
                    cancelled_by=cancelled_by,
                    reason=reason,
                )
            )
            await uow.commit()

        logger.info(
            f"Cancelled event {event_id} ({event.action.value} on "
            f"{event.service_instance_id}) by {cancelled_by or 'unknown'}"
        )
        self._record_metric("cancelled")
        return cancellation

    async def get_event(self, event_id: UUID) -> ScheduledEvent:
        """Get a scheduled event.

        Raises:
            NotFoundError: If the event does not exist
        """
        async with self.uow_factory() as uow:
            event = await uow.events.get_by_id(event_id)
        if event is None:
            raise NotFoundError("ScheduledEvent", event_id)
        return event

    @staticmethod
    def _record_metric(operation: str) -> None:
        try:
            record_scheduled_event_operation(operation)
        except Exception as e:
            logger.warning(f"Failed to record event metric: {e}")
