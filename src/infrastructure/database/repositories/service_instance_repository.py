"""Service instance repository implementation using SQLAlchemy.

State changes go through a single conditional UPDATE so two writers that
read the same state cannot both succeed.
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities.service_instance import LifecycleState, ServiceInstance
from src.domain.repositories.service_instance_repository import (
    ServiceInstanceRepositoryInterface,
)
from src.infrastructure.database.models import ServiceInstanceModel, as_utc


class ServiceInstanceRepository(ServiceInstanceRepositoryInterface):
    """SQLAlchemy implementation of ServiceInstanceRepositoryInterface."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session
        """
        self._session = session

    async def get_by_id(self, instance_id: UUID) -> ServiceInstance | None:
        """Get a service instance by id, bypassing stale identity-map rows.

        Args:
            instance_id: UUID of the instance

        Returns:
            ServiceInstance if found, None otherwise
        """
        stmt = (
            select(ServiceInstanceModel)
            .where(ServiceInstanceModel.id == instance_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        return self._to_entity(model) if model else None

    async def create(self, instance: ServiceInstance) -> ServiceInstance:
        """Create a new service instance.

        Args:
            instance: ServiceInstance entity to create

        Returns:
            Created ServiceInstance entity
        """
        model = self._to_model(instance)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)

        return self._to_entity(model)

    async def compare_and_set_state(
        self,
        instance_id: UUID,
        expected_state: LifecycleState,
        new_state: LifecycleState,
    ) -> ServiceInstance | None:
        """Conditionally move an instance to new_state and bump its version.

        Args:
            instance_id: UUID of the instance
            expected_state: State the row must still hold
            new_state: State to write

        Returns:
            The updated ServiceInstance, or None if no row matched
        """
        stmt = (
            update(ServiceInstanceModel)
            .where(
                ServiceInstanceModel.id == instance_id,
                ServiceInstanceModel.current_state == LifecycleState(expected_state).value,
            )
            .values(
                current_state=LifecycleState(new_state).value,
                version=ServiceInstanceModel.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .returning(ServiceInstanceModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.scalar_one_or_none() is None:
            return None

        return await self.get_by_id(instance_id)

    def _to_entity(self, model: ServiceInstanceModel) -> ServiceInstance:
        """Convert SQLAlchemy model to domain entity."""
        return ServiceInstance(
            id=model.id,
            client_id=model.client_id,
            service_id=model.service_id,
            current_state=LifecycleState(model.current_state),
            created_by=model.created_by,
            version=model.version,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )

    def _to_model(self, entity: ServiceInstance) -> ServiceInstanceModel:
        """Convert domain entity to SQLAlchemy model."""
        return ServiceInstanceModel(
            id=entity.id,
            client_id=entity.client_id,
            service_id=entity.service_id,
            current_state=entity.current_state.value,
            created_by=entity.created_by,
            version=entity.version,
            created_at=as_utc(entity.created_at),
            updated_at=as_utc(entity.updated_at),
        )
