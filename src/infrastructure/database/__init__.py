"""Database infrastructure for the lifecycle store.

This package contains:
- SQLAlchemy models
- Repository implementations and the unit of work
- Database configuration and session management
"""

from src.infrastructure.database.models import (
    ApiKeyModel,
    Base,
    EventCancellationModel,
    LifecycleHistoryModel,
    LifecycleTaskModel,
    ScheduledEventModel,
    ServiceInstanceModel,
)

__all__ = [
    "Base",
    "ServiceInstanceModel",
    "LifecycleHistoryModel",
    "ScheduledEventModel",
    "EventCancellationModel",
    "LifecycleTaskModel",
    "ApiKeyModel",
]
