"""Domain services - Business logic that doesn't fit in entities."""

from src.domain.services.transition_table import (
    DEFAULT_TRANSITION_TABLE,
    TRANSITION_RULES,
    TransitionRule,
    TransitionTable,
)

__all__ = [
    "TransitionRule",
    "TransitionTable",
    "TRANSITION_RULES",
    "DEFAULT_TRANSITION_TABLE",
]
