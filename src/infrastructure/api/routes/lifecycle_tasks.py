"""Lifecycle task API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Path

from src.application.dtos.lifecycle_dto import ActingIdentity
from src.application.use_cases.task_manager import TaskManager
from src.infrastructure.api.dependencies import get_task_manager
from src.infrastructure.api.middleware.auth import get_acting_identity
from src.infrastructure.api.schemas.error_schema import ProblemDetails
from src.infrastructure.api.schemas.lifecycle_schema import LifecycleTaskApiModel

router = APIRouter()

TASK_ID = Path(..., description="Task UUID")

TASK_ERRORS = {
    404: {"model": ProblemDetails, "description": "Task not found"},
    409: {"model": ProblemDetails, "description": "Task already completed"},
}


@router.get(
    "/{task_id}",
    response_model=LifecycleTaskApiModel,
    summary="Get a task",
    responses={404: TASK_ERRORS[404]},
)
async def get_task(
    task_id: UUID = TASK_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    task_manager: TaskManager = Depends(get_task_manager),
) -> LifecycleTaskApiModel:
    return LifecycleTaskApiModel.model_validate(await task_manager.get_task(task_id))


@router.post(
    "/{task_id}/start",
    response_model=LifecycleTaskApiModel,
    summary="Start a pending task",
    responses=TASK_ERRORS,
)
async def start_task(
    task_id: UUID = TASK_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    task_manager: TaskManager = Depends(get_task_manager),
) -> LifecycleTaskApiModel:
    return LifecycleTaskApiModel.model_validate(await task_manager.start_task(task_id))


@router.post(
    "/{task_id}/block",
    response_model=LifecycleTaskApiModel,
    summary="Block a pending task",
    responses=TASK_ERRORS,
)
async def block_task(
    task_id: UUID = TASK_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    task_manager: TaskManager = Depends(get_task_manager),
) -> LifecycleTaskApiModel:
    return LifecycleTaskApiModel.model_validate(await task_manager.block_task(task_id))


@router.post(
    "/{task_id}/complete",
    response_model=LifecycleTaskApiModel,
    summary="Complete a task",
    description="Completes the task whether or not its event has been completed",
    responses=TASK_ERRORS,
)
async def complete_task(
    task_id: UUID = TASK_ID,
    identity: ActingIdentity = Depends(get_acting_identity),
    task_manager: TaskManager = Depends(get_task_manager),
) -> LifecycleTaskApiModel:
    task = await task_manager.complete_task(task_id, acting_user_id=identity.user_id)
    return LifecycleTaskApiModel.model_validate(task)
