"""Repository implementations module.

This module exports all repository implementations.
"""

from src.infrastructure.database.repositories.history_repository import (
    HistoryRepository,
)
from src.infrastructure.database.repositories.lifecycle_task_repository import (
    LifecycleTaskRepository,
)
from src.infrastructure.database.repositories.scheduled_event_repository import (
    ScheduledEventRepository,
)
from src.infrastructure.database.repositories.service_instance_repository import (
    ServiceInstanceRepository,
)

__all__ = [
    "ServiceInstanceRepository",
    "HistoryRepository",
    "ScheduledEventRepository",
    "LifecycleTaskRepository",
]
