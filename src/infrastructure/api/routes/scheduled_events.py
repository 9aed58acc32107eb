"""Scheduled event API routes.

Completing an event executes its transition against the instance's live
state; cancelling deletes it and records the reason.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from src.application.dtos.lifecycle_dto import ActingIdentity
from src.application.use_cases.event_scheduler import EventScheduler
from src.application.use_cases.task_manager import TaskManager
from src.infrastructure.api.dependencies import get_event_scheduler, get_task_manager
from src.infrastructure.api.middleware.auth import get_acting_identity
from src.infrastructure.api.schemas.error_schema import ProblemDetails
from src.infrastructure.api.schemas.lifecycle_schema import (
    CompleteEventApiRequest,
    CreateTaskApiRequest,
    EventCancellationApiModel,
    EventCompletionApiResponse,
    LifecycleTaskApiModel,
    ScheduledEventApiModel,
    TransitionApiResponse,
)
from src.infrastructure.config import get_settings

router = APIRouter()

EVENT_ID = Path(..., description="Scheduled event UUID")

NOT_FOUND = {404: {"model": ProblemDetails, "description": "Event not found"}}


@router.get(
    "/{event_id}",
    response_model=ScheduledEventApiModel,
    summary="Get a scheduled event",
    responses=NOT_FOUND,
)
async def get_event(
    event_id: UUID = EVENT_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    scheduler: EventScheduler = Depends(get_event_scheduler),
) -> ScheduledEventApiModel:
    event = await scheduler.get_event(event_id)
    return ScheduledEventApiModel.model_validate(event)


@router.post(
    "/{event_id}/complete",
    response_model=EventCompletionApiResponse,
    summary="Complete a scheduled event",
    description=(
        "Executes the event's action against the instance's live state. Fails with "
        "409 invalid-transition if the action is no longer legal; the event stays pending."
    ),
    responses={
        **NOT_FOUND,
        403: {"model": ProblemDetails, "description": "Role may not perform the action"},
        409: {"model": ProblemDetails, "description": "Transition no longer legal"},
    },
)
async def complete_event(
    body: CompleteEventApiRequest | None = None,
    event_id: UUID = EVENT_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    scheduler: EventScheduler = Depends(get_event_scheduler),
) -> EventCompletionApiResponse:
    result = await scheduler.complete_event(
        event_id,
        acting_user_id=identity.user_id,
        acting_role=identity.role,
        comments=body.comments if body else None,
    )
    return EventCompletionApiResponse(
        event=ScheduledEventApiModel.model_validate(result.event),
        transition=TransitionApiResponse.from_result(result.transition),
    )


@router.delete(
    "/{event_id}",
    response_model=EventCancellationApiModel,
    summary="Cancel a pending event",
    responses={
        **NOT_FOUND,
        409: {"model": ProblemDetails, "description": "Event already completed"},
    },
)
async def cancel_event(
    event_id: UUID = EVENT_ID,
    reason: str | None = Query(None, max_length=4000, description="Why the event is cancelled"),
    identity: ActingIdentity = Depends(get_acting_identity),
    scheduler: EventScheduler = Depends(get_event_scheduler),
) -> EventCancellationApiModel:
    cancellation = await scheduler.cancel_event(
        event_id, reason=reason, cancelled_by=identity.user_id
    )
    return EventCancellationApiModel.model_validate(cancellation)


@router.post(
    "/{event_id}/tasks",
    response_model=LifecycleTaskApiModel,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a task to an event",
    responses=NOT_FOUND,
)
async def create_task(
    body: CreateTaskApiRequest,
    event_id: UUID = EVENT_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    task_manager: TaskManager = Depends(get_task_manager),
) -> LifecycleTaskApiModel:
    task = await task_manager.create_task(
        event_id,
        title=body.title,
        description=body.description,
        assigned_to=body.assigned_to,
        due_date=body.due_date,
        priority=body.priority or get_settings().lifecycle.default_priority,
    )
    return LifecycleTaskApiModel.model_validate(task)
