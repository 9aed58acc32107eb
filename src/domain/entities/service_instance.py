"""Service instance entities for the lifecycle engine.

This module defines the core lifecycle vocabulary and the two records that
make up a service instance's state:
- ServiceInstance: a client's subscription to one service, with its
  materialized current state
- HistoryEntry: an immutable record of one executed transition
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4


class LifecycleState(str, Enum):
    """Operational stage of a service instance."""

    REQUESTED = "REQUESTED"
    PENDING_INFO = "PENDING_INFO"
    REJECTED = "REJECTED"
    ONBOARDING = "ONBOARDING"
    ACTIVE = "ACTIVE"
    MAINTENANCE = "MAINTENANCE"
    RENEWAL_DUE = "RENEWAL_DUE"
    SUSPENDED = "SUSPENDED"
    TERMINATED = "TERMINATED"
    ARCHIVED = "ARCHIVED"


class LifecycleAction(str, Enum):
    """Operation that may move a service instance between states."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"
    REQUEST_INFO = "REQUEST_INFO"
    PROVIDE_INFO = "PROVIDE_INFO"
    ACTIVATE = "ACTIVATE"
    START_MAINTENANCE = "START_MAINTENANCE"
    COMPLETE_MAINTENANCE = "COMPLETE_MAINTENANCE"
    NOTIFY_RENEWAL = "NOTIFY_RENEWAL"
    REQUEST_RENEWAL = "REQUEST_RENEWAL"
    RENEW = "RENEW"
    SUSPEND = "SUSPEND"
    REINSTATE = "REINSTATE"
    TERMINATE = "TERMINATE"
    ARCHIVE = "ARCHIVE"


class Role(str, Enum):
    """Role of the acting user, supplied by the identity provider."""

    ADMIN = "ADMIN"
    STAFF = "STAFF"
    CLIENT = "CLIENT"
    OBSERVER = "OBSERVER"
    SYSTEM = "SYSTEM"


class Priority(str, Enum):
    """Priority shared by scheduled events and tasks."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


@dataclass
class ServiceInstance:
    """A client's subscription to one service.

    Domain invariants:
    - current_state is only changed by the lifecycle controller
    - current_state equals the resulting_state of the newest HistoryEntry
      (or the initial state when no transition has been executed yet)
    - version increases by one on every state change

    Attributes:
        client_id: Identifier of the subscribing client
        service_id: Identifier of the subscribed service
        current_state: Materialized current lifecycle state
        created_by: User who provisioned the instance
        version: Number of state changes applied so far
        id: Unique identifier of the instance
        created_at: When the instance was provisioned
        updated_at: When current_state last changed
    """

    client_id: str
    service_id: str
    current_state: LifecycleState = LifecycleState.REQUESTED
    created_by: str = ""
    version: int = 0
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate service instance constraints."""
        if not self.client_id:
            raise ValueError("client_id cannot be empty")
        if not self.service_id:
            raise ValueError("service_id cannot be empty")
        if self.version < 0:
            raise ValueError(f"version must be non-negative, got {self.version}")


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable audit record of one executed transition.

    Attributes:
        service_instance_id: Instance the transition was applied to
        resulting_state: State the instance moved into
        action: Action that was performed
        performed_by: User who performed the action
        performed_by_role: Role the user acted under
        comments: Free-text comments supplied with the action
        previous_state: State the instance moved out of
        instance_version: Instance version the transition produced; orders
            entries that share a timestamp
        id: Unique identifier of the entry
        timestamp: When the transition was committed
    """

    service_instance_id: UUID
    resulting_state: LifecycleState
    action: LifecycleAction
    performed_by: str
    performed_by_role: Role
    comments: str | None = None
    previous_state: LifecycleState | None = None
    instance_version: int = 0
    id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate history entry constraints."""
        if not self.performed_by:
            raise ValueError("performed_by cannot be empty")
        if self.instance_version < 0:
            raise ValueError("instance_version cannot be negative")
