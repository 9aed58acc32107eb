"""History ledger use case.

Read side of the lifecycle engine: history, pending events, open tasks and
the overview that combines them. Nothing here writes.
"""

import logging
from uuid import UUID

from src.application.dtos.lifecycle_dto import LifecycleOverview
from src.application.use_cases.lifecycle_controller import UnitOfWorkFactory
from src.domain.entities.lifecycle_task import LifecycleTask
from src.domain.entities.scheduled_event import EventCancellation, ScheduledEvent
from src.domain.entities.service_instance import (
    HistoryEntry,
    LifecycleAction,
    LifecycleState,
    Role,
)
from src.domain.exceptions import NotFoundError
from src.domain.services.transition_table import (
    DEFAULT_TRANSITION_TABLE,
    TransitionTable,
)

logger = logging.getLogger(__name__)

TASK_VIEWER_ROLES = frozenset({Role.ADMIN, Role.STAFF})


class HistoryLedger:
    """Query the lifecycle record of service instances."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        transition_table: TransitionTable = DEFAULT_TRANSITION_TABLE,
        default_history_limit: int | None = None,
    ):
        self.uow_factory = uow_factory
        self.transition_table = transition_table
        self.default_history_limit = default_history_limit

    async def history_for(
        self, service_instance_id: UUID, limit: int | None = None
    ) -> list[HistoryEntry]:
        """Return history entries for an instance, newest first.

        Args:
            service_instance_id: Instance to read
            limit: Maximum entries to return; falls back to the ledger default

        Raises:
            NotFoundError: If the instance does not exist
        """
        if limit is not None and limit < 1:
            raise ValueError("limit must be positive")
        async with self.uow_factory() as uow:
            await self._require_instance(uow, service_instance_id)
            return await uow.history.list_for_instance(
                service_instance_id, limit=limit or self.default_history_limit
            )

    async def pending_events_for(self, service_instance_id: UUID) -> list[ScheduledEvent]:
        """Return pending events ordered by scheduled time, unscheduled last."""
        async with self.uow_factory() as uow:
            await self._require_instance(uow, service_instance_id)
            return await uow.events.list_pending_for_instance(service_instance_id)

    async def pending_tasks_for(self, service_instance_id: UUID) -> list[LifecycleTask]:
        """Return open tasks ordered by due date, undated last."""
        async with self.uow_factory() as uow:
            await self._require_instance(uow, service_instance_id)
            return await uow.tasks.list_open_for_instance(service_instance_id)

    async def cancellations_for(
        self, service_instance_id: UUID
    ) -> list[EventCancellation]:
        """Return the cancellation log of an instance, newest first."""
        async with self.uow_factory() as uow:
            await self._require_instance(uow, service_instance_id)
            return await uow.events.list_cancellations_for_instance(service_instance_id)

    def valid_actions(self, state: LifecycleState, role: Role) -> list[LifecycleAction]:
        """Actions role may take from state, in table order."""
        allowed = self.transition_table.valid_next_actions(state, role)
        return [
            rule.action
            for rule in self.transition_table.rules
            if rule.from_state == state and rule.action in allowed
        ]

    async def overview(self, service_instance_id: UUID, role: Role) -> LifecycleOverview:
        """Build the lifecycle overview of one instance as seen by role.

        Pending tasks are only included for ADMIN and STAFF.

        Raises:
            NotFoundError: If the instance does not exist
        """
        async with self.uow_factory() as uow:
            instance = await self._require_instance(uow, service_instance_id)
            history = await uow.history.list_for_instance(
                service_instance_id, limit=self.default_history_limit
            )
            events = await uow.events.list_pending_for_instance(service_instance_id)
            tasks: list[LifecycleTask] = []
            if role in TASK_VIEWER_ROLES:
                tasks = await uow.tasks.list_open_for_instance(service_instance_id)

        logger.debug(
            f"Overview for {service_instance_id} as {role}: "
            f"{len(history)} history, {len(events)} events, {len(tasks)} tasks"
        )
        return LifecycleOverview(
            service_instance_id=instance.id,
            current_state=instance.current_state,
            valid_actions=self.valid_actions(instance.current_state, role),
            history=history,
            pending_events=events,
            pending_tasks=tasks,
            is_terminal=self.transition_table.is_terminal(instance.current_state),
        )

    @staticmethod
    async def _require_instance(uow, service_instance_id: UUID):
        instance = await uow.instances.get_by_id(service_instance_id)
        if instance is None:
            raise NotFoundError("ServiceInstance", service_instance_id)
        return instance
