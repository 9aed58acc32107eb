"""Lifecycle task repository interface module."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from src.domain.entities.lifecycle_task import LifecycleTask


class LifecycleTaskRepositoryInterface(ABC):
    """Repository interface for LifecycleTask operations."""

    @abstractmethod
    async def create(self, task: "LifecycleTask") -> "LifecycleTask":
        """Persist a new task.

        Args:
            task: LifecycleTask to create

        Returns:
            The created LifecycleTask
        """
        pass

    @abstractmethod
    async def get_by_id(self, task_id: UUID) -> "LifecycleTask | None":
        """Get a task by id.

        Args:
            task_id: UUID of the task

        Returns:
            LifecycleTask if found, None otherwise
        """
        pass

    @abstractmethod
    async def update(self, task: "LifecycleTask") -> "LifecycleTask":
        """Write back a task's status and completion fields.

        Args:
            task: LifecycleTask with updated fields

        Returns:
            The updated LifecycleTask

        Raises:
            ValueError: If the task does not exist
        """
        pass

    @abstractmethod
    async def list_open_for_instance(self, instance_id: UUID) -> list["LifecycleTask"]:
        """List the open (not completed) tasks of one instance.

        Tasks are matched to the instance through their event.

        Args:
            instance_id: UUID of the service instance

        Returns:
            Open tasks ordered by due_date ascending, undated last
        """
        pass

    @abstractmethod
    async def list_for_event(self, event_id: UUID) -> list["LifecycleTask"]:
        """List all tasks attached to one event, oldest first."""
        pass
