"""Use cases - Application-specific business rules.

This package contains use cases that orchestrate domain logic
and implement application-specific workflows.
"""

from src.application.use_cases.event_scheduler import EventScheduler
from src.application.use_cases.history_ledger import HistoryLedger
from src.application.use_cases.lifecycle_controller import LifecycleController
from src.application.use_cases.task_manager import TaskManager

__all__ = [
    "LifecycleController",
    "EventScheduler",
    "TaskManager",
    "HistoryLedger",
]
