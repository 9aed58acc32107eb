"""History ledger repository implementation using SQLAlchemy.

Insert and select only; the table has no update or delete path.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities.service_instance import (
    HistoryEntry,
    LifecycleAction,
    LifecycleState,
    Role,
)
from src.domain.repositories.history_repository import HistoryRepositoryInterface
from src.infrastructure.database.models import LifecycleHistoryModel, as_utc


class HistoryRepository(HistoryRepositoryInterface):
    """SQLAlchemy implementation of HistoryRepositoryInterface."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def append(self, entry: HistoryEntry) -> HistoryEntry:
        """Insert a history entry.

        Args:
            entry: HistoryEntry to append

        Returns:
            The stored HistoryEntry
        """
        model = self._to_model(entry)
        self._session.add(model)
        await self._session.flush()

        return self._to_entity(model)

    async def list_for_instance(
        self, instance_id: UUID, limit: int | None = None
    ) -> list[HistoryEntry]:
        """List the entries of one instance, newest first.

        Args:
            instance_id: UUID of the service instance
            limit: Maximum number of entries to return (None for all)

        Returns:
            List of HistoryEntry entities
        """
        stmt = (
            select(LifecycleHistoryModel)
            .where(LifecycleHistoryModel.service_instance_id == instance_id)
            .order_by(
                LifecycleHistoryModel.timestamp.desc(),
                LifecycleHistoryModel.instance_version.desc(),
            )
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    def _to_entity(self, model: LifecycleHistoryModel) -> HistoryEntry:
        """Convert SQLAlchemy model to domain entity."""
        return HistoryEntry(
            id=model.id,
            service_instance_id=model.service_instance_id,
            previous_state=(
                LifecycleState(model.previous_state) if model.previous_state else None
            ),
            resulting_state=LifecycleState(model.resulting_state),
            action=LifecycleAction(model.action),
            performed_by=model.performed_by,
            performed_by_role=Role(model.performed_by_role),
            comments=model.comments,
            instance_version=model.instance_version,
            timestamp=as_utc(model.timestamp),
        )

    def _to_model(self, entity: HistoryEntry) -> LifecycleHistoryModel:
        """Convert domain entity to SQLAlchemy model."""
        return LifecycleHistoryModel(
            id=entity.id,
            service_instance_id=entity.service_instance_id,
            previous_state=entity.previous_state.value if entity.previous_state else None,
            resulting_state=entity.resulting_state.value,
            action=entity.action.value,
            performed_by=entity.performed_by,
            performed_by_role=entity.performed_by_role.value,
            comments=entity.comments,
            instance_version=entity.instance_version,
            timestamp=as_utc(entity.timestamp),
        )
