"""Task manager use case.

Tasks are work items attached to scheduled events. Their status changes are
independent of the event: a task can be completed while its event is still
pending, and completing the event leaves its tasks alone.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from src.application.use_cases.lifecycle_controller import UnitOfWorkFactory
from src.domain.entities.lifecycle_task import LifecycleTask, TaskStatus
from src.domain.entities.service_instance import Priority
from src.domain.exceptions import InvalidTransitionError, NotFoundError
from src.infrastructure.observability.metrics import record_task_operation

logger = logging.getLogger(__name__)


class TaskManager:
    """Create tasks and move them through their statuses."""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    async def create_task(
        self,
        event_id: UUID,
        title: str,
        description: str | None = None,
        assigned_to: str | None = None,
        due_date: datetime | None = None,
        priority: Priority = Priority.MEDIUM,
    ) -> LifecycleTask:
        """Create a PENDING task for an event.

        Raises:
            NotFoundError: If the event does not exist
            ValueError: If title is blank
        """
        task = LifecycleTask(
            event_id=event_id,
            title=title,
            description=description,
            assigned_to=assigned_to,
            due_date=due_date,
            priority=Priority(priority),
        )

        async with self.uow_factory() as uow:
            if await uow.events.get_by_id(event_id) is None:
                raise NotFoundError("ScheduledEvent", event_id)
            created = await uow.tasks.create(task)
            await uow.commit()

        logger.info(f"Created task {created.id} '{title}' for event {event_id}")
        self._record_metric("created")
        return created

    async def start_task(self, task_id: UUID) -> LifecycleTask:
        """Move a PENDING task to IN_PROGRESS.

        Raises:
            NotFoundError: If the task does not exist
            InvalidTransitionError: If the task is not PENDING
        """
        return await self._set_status(
            task_id, TaskStatus.IN_PROGRESS, "started", from_statuses={TaskStatus.PENDING}
        )

    async def block_task(self, task_id: UUID) -> LifecycleTask:
        """Move a PENDING task to BLOCKED.

        Raises:
            NotFoundError: If the task does not exist
            InvalidTransitionError: If the task is not PENDING
        """
        return await self._set_status(
            task_id, TaskStatus.BLOCKED, "blocked", from_statuses={TaskStatus.PENDING}
        )

    async def complete_task(self, task_id: UUID, acting_user_id: str) -> LifecycleTask:
        """Complete a task.

        Never checks whether the task's event has been completed.

        Raises:
            NotFoundError: If the task does not exist
            InvalidTransitionError: If the task is already completed
        """
        return await self._set_status(
            task_id, TaskStatus.COMPLETED, "completed", completed_by=acting_user_id
        )

    async def get_task(self, task_id: UUID) -> LifecycleTask:
        """Get a task.

        Raises:
            NotFoundError: If the task does not exist
        """
        async with self.uow_factory() as uow:
            task = await uow.tasks.get_by_id(task_id)
        if task is None:
            raise NotFoundError("LifecycleTask", task_id)
        return task

    async def _set_status(
        self,
        task_id: UUID,
        status: TaskStatus,
        operation: str,
        completed_by: str | None = None,
        from_statuses: set[TaskStatus] | None = None,
    ) -> LifecycleTask:
        async with self.uow_factory() as uow:
            task = await uow.tasks.get_by_id(task_id)
            if task is None:
                raise NotFoundError("LifecycleTask", task_id)
            if not task.is_open:
                raise InvalidTransitionError(
                    task.status, status, "task already completed"
                )
            if from_statuses is not None and task.status not in from_statuses:
                raise InvalidTransitionError(
                    task.status, status, f"task is {task.status.value}"
                )

            task.status = status
            if status == TaskStatus.COMPLETED:
                task.completed_by = completed_by
                task.completed_at = datetime.now(timezone.utc)
            updated = await uow.tasks.update(task)
            await uow.commit()

        logger.info(f"Task {task_id} {operation}")
        self._record_metric(operation)
        return updated

    @staticmethod
    def _record_metric(operation: str) -> None:
        try:
            record_task_operation(operation)
        except Exception as e:
            logger.warning(f"Failed to record task metric: {e}")
