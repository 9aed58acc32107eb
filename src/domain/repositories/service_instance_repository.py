"""Service instance repository interface module.

This module defines the abstract interface for ServiceInstance persistence,
including the conditional state update used for optimistic concurrency.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from src.domain.entities.service_instance import LifecycleState, ServiceInstance


class ServiceInstanceRepositoryInterface(ABC):
    """Repository interface for ServiceInstance entity operations."""

    @abstractmethod
    async def get_by_id(self, instance_id: UUID) -> "ServiceInstance | None":
        """Get a service instance by id.

        Args:
            instance_id: UUID of the service instance

        Returns:
            ServiceInstance if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, instance: "ServiceInstance") -> "ServiceInstance":
        """Persist a new service instance.

        Args:
            instance: ServiceInstance to create

        Returns:
            The created ServiceInstance
        """
        pass

    @abstractmethod
    async def compare_and_set_state(
        self,
        instance_id: UUID,
        expected_state: "LifecycleState",
        new_state: "LifecycleState",
    ) -> "ServiceInstance | None":
        """Move an instance to new_state only if it is still in expected_state.

        The check and the write are a single atomic operation against the
        store; of two callers racing on the same expected_state, exactly one
        gets the updated instance back.

        Args:
            instance_id: UUID of the service instance
            expected_state: State the caller observed
            new_state: State to write

        Returns:
            The updated ServiceInstance, or None if the instance does not
            exist or is no longer in expected_state
        """
        pass
