"""Service instance lifecycle API routes.

Provisioning, immediate transitions, and the read side (overview, history,
valid actions, pending events and tasks) of one service instance.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from src.application.dtos.lifecycle_dto import ActingIdentity
from src.application.use_cases.event_scheduler import EventScheduler
from src.application.use_cases.history_ledger import HistoryLedger
from src.application.use_cases.lifecycle_controller import LifecycleController
from src.infrastructure.api.dependencies import (
    get_event_scheduler,
    get_history_ledger,
    get_lifecycle_controller,
)
from src.infrastructure.api.middleware.auth import get_acting_identity
from src.infrastructure.api.schemas.error_schema import ProblemDetails
from src.infrastructure.api.schemas.lifecycle_schema import (
    EventCancellationApiModel,
    HistoryApiResponse,
    HistoryEntryApiModel,
    LifecycleOverviewApiResponse,
    LifecycleTaskApiModel,
    ProvisionInstanceApiRequest,
    ScheduledEventApiModel,
    ScheduleEventApiRequest,
    ServiceInstanceApiResponse,
    TransitionApiRequest,
    TransitionApiResponse,
    ValidActionsApiResponse,
)
from src.infrastructure.config import get_settings

router = APIRouter()

INSTANCE_ID = Path(..., description="Service instance UUID")

COMMON_ERRORS = {
    401: {"model": ProblemDetails, "description": "Missing or invalid API key"},
    404: {"model": ProblemDetails, "description": "Service instance not found"},
}


@router.post(
    "",
    response_model=ServiceInstanceApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Provision a service instance",
    responses={
        401: COMMON_ERRORS[401],
        403: {"model": ProblemDetails, "description": "Role may not provision"},
    },
)
async def provision_instance(
    body: ProvisionInstanceApiRequest,
    identity: ActingIdentity = Depends(get_acting_identity),
    controller: LifecycleController = Depends(get_lifecycle_controller),
) -> ServiceInstanceApiResponse:
    """Create a service instance; writes no history entry."""
    instance = await controller.provision_instance(
        client_id=body.client_id,
        service_id=body.service_id,
        acting_user_id=identity.user_id,
        acting_role=identity.role,
        initial_state=body.initial_state,
    )
    return ServiceInstanceApiResponse.model_validate(instance)


@router.get(
    "/{instance_id}",
    response_model=ServiceInstanceApiResponse,
    summary="Get a service instance",
    responses=COMMON_ERRORS,
)
async def get_instance(
    instance_id: UUID = INSTANCE_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    controller: LifecycleController = Depends(get_lifecycle_controller),
) -> ServiceInstanceApiResponse:
    """Get a service instance with its current state and version."""
    instance = await controller.get_instance(instance_id)
    return ServiceInstanceApiResponse.model_validate(instance)


@router.get(
    "/{instance_id}/overview",
    response_model=LifecycleOverviewApiResponse,
    summary="Lifecycle overview",
    description=(
        "Current state, the actions the acting role may take, history (newest first), "
        "pending events and, for ADMIN and STAFF, open tasks"
    ),
    responses=COMMON_ERRORS,
)
async def get_overview(
    instance_id: UUID = INSTANCE_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    ledger: HistoryLedger = Depends(get_history_ledger),
) -> LifecycleOverviewApiResponse:
    """Build the lifecycle overview as seen by the acting role."""
    overview = await ledger.overview(instance_id, identity.role)
    return LifecycleOverviewApiResponse.model_validate(overview)


@router.get(
    "/{instance_id}/history",
    response_model=HistoryApiResponse,
    summary="Lifecycle history",
    responses=COMMON_ERRORS,
)
async def get_history(
    instance_id: UUID = INSTANCE_ID,
    limit: int | None = Query(None, ge=1, le=1000, description="Maximum entries"),
    identity: ActingIdentity = Depends(get_acting_identity),
    ledger: HistoryLedger = Depends(get_history_ledger),
) -> HistoryApiResponse:
    """Return history entries, newest first."""
    entries = await ledger.history_for(instance_id, limit=limit)
    return HistoryApiResponse(
        service_instance_id=instance_id,
        entries=[HistoryEntryApiModel.model_validate(e) for e in entries],
    )


@router.get(
    "/{instance_id}/valid-actions",
    response_model=ValidActionsApiResponse,
    summary="Actions available to the acting role",
    responses=COMMON_ERRORS,
)
async def get_valid_actions(
    instance_id: UUID = INSTANCE_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    controller: LifecycleController = Depends(get_lifecycle_controller),
    ledger: HistoryLedger = Depends(get_history_ledger),
) -> ValidActionsApiResponse:
    """List the actions the acting role may take from the current state."""
    instance = await controller.get_instance(instance_id)
    return ValidActionsApiResponse(
        service_instance_id=instance.id,
        current_state=instance.current_state,
        role=identity.role,
        valid_actions=ledger.valid_actions(instance.current_state, identity.role),
    )


@router.post(
    "/{instance_id}/transitions",
    response_model=TransitionApiResponse,
    summary="Perform a transition",
    responses={
        **COMMON_ERRORS,
        403: {"model": ProblemDetails, "description": "Role may not perform the action"},
        409: {
            "model": ProblemDetails,
            "description": "Action not defined from expected_state, or the instance moved",
        },
    },
)
async def perform_transition(
    body: TransitionApiRequest,
    instance_id: UUID = INSTANCE_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    controller: LifecycleController = Depends(get_lifecycle_controller),
) -> TransitionApiResponse:
    """Execute a transition with optimistic concurrency on expected_state."""
    result = await controller.perform_transition(
        service_instance_id=instance_id,
        expected_current_state=body.expected_state,
        action=body.action,
        acting_user_id=identity.user_id,
        acting_role=identity.role,
        comments=body.comments,
    )
    return TransitionApiResponse.from_result(result)


@router.post(
    "/{instance_id}/events",
    response_model=ScheduledEventApiModel,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a deferred transition",
    responses={
        **COMMON_ERRORS,
        409: {"model": ProblemDetails, "description": "Action not defined from current_state"},
    },
)
async def schedule_event(
    body: ScheduleEventApiRequest,
    instance_id: UUID = INSTANCE_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    scheduler: EventScheduler = Depends(get_event_scheduler),
) -> ScheduledEventApiModel:
    """Create a pending event; the instance is not touched."""
    event = await scheduler.create_event(
        service_instance_id=instance_id,
        current_state=body.current_state,
        action=body.action,
        scheduled_time=body.scheduled_time,
        assigned_to=body.assigned_to,
        priority=body.priority or get_settings().lifecycle.default_priority,
        created_by=identity.user_id,
        notified_users=body.notified_users,
    )
    return ScheduledEventApiModel.model_validate(event)


@router.get(
    "/{instance_id}/events",
    response_model=list[ScheduledEventApiModel],
    summary="Pending events",
    responses=COMMON_ERRORS,
)
async def list_pending_events(
    instance_id: UUID = INSTANCE_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    ledger: HistoryLedger = Depends(get_history_ledger),
) -> list[ScheduledEventApiModel]:
    """Pending events, soonest first, unscheduled last."""
    events = await ledger.pending_events_for(instance_id)
    return [ScheduledEventApiModel.model_validate(e) for e in events]


@router.get(
    "/{instance_id}/tasks",
    response_model=list[LifecycleTaskApiModel],
    summary="Open tasks",
    responses=COMMON_ERRORS,
)
async def list_open_tasks(
    instance_id: UUID = INSTANCE_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    ledger: HistoryLedger = Depends(get_history_ledger),
) -> list[LifecycleTaskApiModel]:
    """Open tasks across the instance's events, by due date, undated last."""
    tasks = await ledger.pending_tasks_for(instance_id)
    return [LifecycleTaskApiModel.model_validate(t) for t in tasks]


@router.get(
    "/{instance_id}/cancellations",
    response_model=list[EventCancellationApiModel],
    summary="Cancelled events",
    responses=COMMON_ERRORS,
)
async def list_cancellations(
    instance_id: UUID = INSTANCE_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    ledger: HistoryLedger = Depends(get_history_ledger),
) -> list[EventCancellationApiModel]:
    """Cancellation log of the instance, newest first."""
    cancellations = await ledger.cancellations_for(instance_id)
    return [EventCancellationApiModel.model_validate(c) for c in cancellations]
