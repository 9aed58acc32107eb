"""Lifecycle task repository implementation using SQLAlchemy."""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities.lifecycle_task import LifecycleTask, TaskStatus
from src.domain.entities.service_instance import Priority
from src.domain.repositories.lifecycle_task_repository import (
    LifecycleTaskRepositoryInterface,
)
from src.infrastructure.database.models import (
    LifecycleTaskModel,
    ScheduledEventModel,
    as_utc,
)


class LifecycleTaskRepository(LifecycleTaskRepositoryInterface):
    """SQLAlchemy implementation of LifecycleTaskRepositoryInterface."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, task: LifecycleTask) -> LifecycleTask:
        """Insert a task."""
        model = self._to_model(task)
        self._session.add(model)
        await self._session.flush()

        return self._to_entity(model)

    async def get_by_id(self, task_id: UUID) -> LifecycleTask | None:
        """Get a task by id.

        Args:
            task_id: UUID of the task

        Returns:
            LifecycleTask if found, None otherwise
        """
        stmt = (
            select(LifecycleTaskModel)
            .where(LifecycleTaskModel.id == task_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        return self._to_entity(model) if model else None

    async def update(self, task: LifecycleTask) -> LifecycleTask:
        """Write back a task's status and completion fields.

        Raises:
            ValueError: If the task does not exist
        """
        stmt = (
            update(LifecycleTaskModel)
            .where(LifecycleTaskModel.id == task.id)
            .values(
                status=task.status.value,
                assigned_to=task.assigned_to,
                completed_by=task.completed_by,
                completed_at=as_utc(task.completed_at),
            )
            .returning(LifecycleTaskModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.scalar_one_or_none() is None:
            raise ValueError(f"LifecycleTask with id '{task.id}' does not exist")

        return await self.get_by_id(task.id)

    async def list_open_for_instance(self, instance_id: UUID) -> list[LifecycleTask]:
        """List open tasks of an instance, joined through their event.

        Returns:
            Open tasks ordered by due_date ascending, undated last
        """
        stmt = (
            select(LifecycleTaskModel)
            .join(ScheduledEventModel, LifecycleTaskModel.event_id == ScheduledEventModel.id)
            .where(
                ScheduledEventModel.service_instance_id == instance_id,
                LifecycleTaskModel.status != TaskStatus.COMPLETED.value,
            )
            .order_by(
                LifecycleTaskModel.due_date.asc().nulls_last(),
                LifecycleTaskModel.created_at.asc(),
            )
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def list_for_event(self, event_id: UUID) -> list[LifecycleTask]:
        """List all tasks attached to one event, oldest first."""
        stmt = (
            select(LifecycleTaskModel)
            .where(LifecycleTaskModel.event_id == event_id)
            .order_by(LifecycleTaskModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    def _to_entity(self, model: LifecycleTaskModel) -> LifecycleTask:
        """Convert SQLAlchemy model to domain entity."""
        return LifecycleTask(
            id=model.id,
            event_id=model.event_id,
            title=model.title,
            description=model.description,
            assigned_to=model.assigned_to,
            due_date=as_utc(model.due_date),
            priority=Priority(model.priority),
            status=TaskStatus(model.status),
            completed_by=model.completed_by,
            completed_at=as_utc(model.completed_at),
            created_at=as_utc(model.created_at),
        )

    def _to_model(self, entity: LifecycleTask) -> LifecycleTaskModel:
        """Convert domain entity to SQLAlchemy model."""
        return LifecycleTaskModel(
            id=entity.id,
            event_id=entity.event_id,
            title=entity.title,
            description=entity.description,
            assigned_to=entity.assigned_to,
            due_date=as_utc(entity.due_date),
            priority=entity.priority.value,
            status=entity.status.value,
            completed_by=entity.completed_by,
            completed_at=as_utc(entity.completed_at),
            created_at=as_utc(entity.created_at),
        )
