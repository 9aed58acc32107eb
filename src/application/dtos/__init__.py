"""Application layer DTOs.

This package contains data transfer objects (DTOs) for the application layer.
Uses dataclasses (not Pydantic) per Clean Architecture principles.
"""

from src.application.dtos.lifecycle_dto import (
    ActingIdentity,
    EventCompletionResult,
    LifecycleOverview,
    TransitionResult,
)

__all__ = [
    "ActingIdentity",
    "TransitionResult",
    "EventCompletionResult",
    "LifecycleOverview",
]
