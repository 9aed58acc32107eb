"""Lifecycle engine error taxonomy.

All errors are raised synchronously to the caller; the engine never retries.
Retrying a ConcurrencyConflictError is the caller's job: re-read the
instance, recompute the valid actions, resubmit.
"""

from uuid import UUID


class LifecycleError(Exception):
    """Base class for all lifecycle engine errors."""


class InvalidTransitionError(LifecycleError):
    """Raised when an action is not defined from the given state.

    Also raised when a scheduled event can no longer be executed because the
    instance's live state drifted, and when a completed event or task is
    acted on again.
    """

    def __init__(self, state, action, reason: str | None = None) -> None:
        self.state = state
        self.action = action
        self.reason = reason or (
            f"Action {_label(action)} is not allowed from state {_label(state)}"
        )
        super().__init__(self.reason)


class UnauthorizedTransitionError(LifecycleError):
    """Raised when the acting role may not perform an action."""

    def __init__(self, state, action, role) -> None:
        self.state = state
        self.action = action
        self.role = role
        super().__init__(
            f"Role {_label(role)} may not perform {_label(action)} from state {_label(state)}"
        )


class ConcurrencyConflictError(LifecycleError):
    """Raised when the expected current state no longer matches the stored one."""

    def __init__(self, service_instance_id: UUID, expected_state, actual_state=None) -> None:
        self.service_instance_id = service_instance_id
        self.expected_state = expected_state
        self.actual_state = actual_state
        message = (
            f"Service instance {service_instance_id} is no longer in state "
            f"{_label(expected_state)}"
        )
        if actual_state is not None:
            message += f" (now {_label(actual_state)})"
        super().__init__(message)


class NotFoundError(LifecycleError):
    """Raised when an instance, event, or task does not exist."""

    def __init__(self, entity: str, entity_id) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class PersistenceFailureError(LifecycleError):
    """Raised when the underlying store operation fails."""


def _label(value) -> str:
    return getattr(value, "value", str(value))
