"""Repository interfaces - Abstract data access contracts."""

from src.domain.repositories.history_repository import HistoryRepositoryInterface
from src.domain.repositories.lifecycle_task_repository import (
    LifecycleTaskRepositoryInterface,
)
from src.domain.repositories.scheduled_event_repository import (
    ScheduledEventRepositoryInterface,
)
from src.domain.repositories.service_instance_repository import (
    ServiceInstanceRepositoryInterface,
)
from src.domain.repositories.unit_of_work import LifecycleUnitOfWork

__all__ = [
    "ServiceInstanceRepositoryInterface",
    "HistoryRepositoryInterface",
    "ScheduledEventRepositoryInterface",
    "LifecycleTaskRepositoryInterface",
    "LifecycleUnitOfWork",
]
