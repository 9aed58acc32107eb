"""Pydantic schemas for the service lifecycle API endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.domain.entities.lifecycle_task import TaskStatus
from src.domain.entities.service_instance import (
    LifecycleAction,
    LifecycleState,
    Priority,
    Role,
)


class _FromDomain(BaseModel):
    """Response models are built straight from domain dataclasses."""

    model_config = ConfigDict(from_attributes=True)


# Requests


class ProvisionInstanceApiRequest(BaseModel):
    """Request to provision a service instance for a client."""

    client_id: str = Field(..., min_length=1, max_length=255, description="Owning client")
    service_id: str = Field(
        ..., min_length=1, max_length=255, description="Service catalogue identifier"
    )
    initial_state: LifecycleState = Field(
        default=LifecycleState.REQUESTED, description="State to create the instance in"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"client_id": "client-42", "service_id": "managed-backup"}
        }
    )


class TransitionApiRequest(BaseModel):
    """Request to perform an immediate transition."""

    expected_state: LifecycleState = Field(
        ..., description="State the caller last read; guards against lost updates"
    )
    action: LifecycleAction = Field(..., description="Action to perform")
    comments: str | None = Field(None, max_length=4000, description="Stored on the history entry")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "expected_state": "ONBOARDING",
                "action": "APPROVE",
                "comments": "Onboarding checklist complete",
            }
        }
    )


class ScheduleEventApiRequest(BaseModel):
    """Request to schedule a deferred transition."""

    current_state: LifecycleState = Field(..., description="State the caller observed")
    action: LifecycleAction = Field(..., description="Action to perform on completion")
    scheduled_time: datetime | None = Field(None, description="Advisory completion time")
    assigned_to: str | None = Field(None, max_length=255)
    priority: Priority | None = Field(None, description="Defaults to the configured priority")
    notified_users: list[str] = Field(default_factory=list)


class CompleteEventApiRequest(BaseModel):
    """Request to complete a scheduled event."""

    comments: str | None = Field(None, max_length=4000)


class CreateTaskApiRequest(BaseModel):
    """Request to attach a task to a scheduled event."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    assigned_to: str | None = Field(None, max_length=255)
    due_date: datetime | None = None
    priority: Priority | None = Field(None, description="Defaults to the configured priority")


# Responses


class ServiceInstanceApiResponse(_FromDomain):
    """A service instance."""

    id: UUID
    client_id: str
    service_id: str
    current_state: LifecycleState
    version: int
    created_by: str
    created_at: datetime
    updated_at: datetime


class HistoryEntryApiModel(_FromDomain):
    """One entry of an instance's lifecycle history."""

    id: UUID
    service_instance_id: UUID
    previous_state: LifecycleState | None = None
    resulting_state: LifecycleState
    action: LifecycleAction
    performed_by: str
    performed_by_role: Role
    comments: str | None = None
    instance_version: int
    timestamp: datetime


class HistoryApiResponse(BaseModel):
    """History of an instance, newest first."""

    service_instance_id: UUID
    entries: list[HistoryEntryApiModel]


class TransitionApiResponse(BaseModel):
    """Outcome of a committed transition."""

    service_instance_id: UUID
    previous_state: LifecycleState
    new_state: LifecycleState
    action: LifecycleAction
    version: int
    history_entry: HistoryEntryApiModel

    @classmethod
    def from_result(cls, result) -> "TransitionApiResponse":
        return cls(
            service_instance_id=result.instance.id,
            previous_state=result.previous_state,
            new_state=result.new_state,
            action=result.action,
            version=result.instance.version,
            history_entry=HistoryEntryApiModel.model_validate(result.history_entry),
        )


class ScheduledEventApiModel(_FromDomain):
    """A scheduled event."""

    id: UUID
    service_instance_id: UUID
    action: LifecycleAction
    target_state: LifecycleState
    created_from_state: LifecycleState
    scheduled_time: datetime | None = None
    assigned_to: str | None = None
    priority: Priority
    notified_users: list[str]
    created_by: str | None = None
    is_completed: bool
    completed_time: datetime | None = None
    completed_by: str | None = None
    history_entry_id: UUID | None = None
    created_at: datetime


class EventCompletionApiResponse(BaseModel):
    """Completed event plus the transition it executed."""

    event: ScheduledEventApiModel
    transition: TransitionApiResponse


class EventCancellationApiModel(_FromDomain):
    """Record of a cancelled event."""

    id: UUID
    event_id: UUID
    service_instance_id: UUID
    action: LifecycleAction
    cancelled_by: str | None = None
    reason: str | None = None
    cancelled_at: datetime


class LifecycleTaskApiModel(_FromDomain):
    """A task attached to a scheduled event."""

    id: UUID
    event_id: UUID
    title: str
    description: str | None = None
    assigned_to: str | None = None
    due_date: datetime | None = None
    priority: Priority
    status: TaskStatus
    completed_by: str | None = None
    completed_at: datetime | None = None
    created_at: datetime


class ValidActionsApiResponse(BaseModel):
    """Actions the acting role may take from the instance's current state."""

    service_instance_id: UUID
    current_state: LifecycleState
    role: Role
    valid_actions: list[LifecycleAction]


class LifecycleOverviewApiResponse(_FromDomain):
    """Lifecycle view of one instance."""

    service_instance_id: UUID
    current_state: LifecycleState
    is_terminal: bool
    valid_actions: list[LifecycleAction]
    history: list[HistoryEntryApiModel]
    pending_events: list[ScheduledEventApiModel]
    pending_tasks: list[LifecycleTaskApiModel]


class TransitionRuleApiModel(BaseModel):
    """One row of the transition table."""

    from_state: LifecycleState
    action: LifecycleAction
    to_state: LifecycleState
    roles: list[Role]
    notify_roles: list[Role]
