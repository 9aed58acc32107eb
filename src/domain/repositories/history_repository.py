"""History ledger repository interface module.

The ledger is append-only: there is no update or delete operation.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from src.domain.entities.service_instance import HistoryEntry


class HistoryRepositoryInterface(ABC):
    """Repository interface for HistoryEntry records."""

    @abstractmethod
    async def append(self, entry: "HistoryEntry") -> "HistoryEntry":
        """Append an entry to the ledger.

        Args:
            entry: HistoryEntry to append

        Returns:
            The stored HistoryEntry
        """
        pass

    @abstractmethod
    async def list_for_instance(
        self, instance_id: UUID, limit: int | None = None
    ) -> list["HistoryEntry"]:
        """List the ledger of one instance, newest first.

        Args:
            instance_id: UUID of the service instance
            limit: Maximum number of entries to return (None for all)

        Returns:
            List of HistoryEntry, most recent first
        """
        pass
