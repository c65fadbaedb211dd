"""API endpoints for Offboarding module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, AnyUser
from src.core.database import get_db
from src.modules.offboarding.models import TaskStatus, TaskType
from src.modules.offboarding.schemas import (
    GenerateResultResponse,
    TaskCreate,
    TaskGenerateRequest,
    TaskResponse,
    TaskStatusUpdate,
)
from src.modules.offboarding.service import OffboardingService
from src.shared.schemas import ApiResponse

router = APIRouter(prefix="/offboarding", tags=["Offboarding"])


@router.post(
    "/tasks",
    response_model=ApiResponse[TaskResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    data: TaskCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    task = await OffboardingService(db).create_task(data, current_user.id)
    return ApiResponse(data=TaskResponse.model_validate(task), message="Task created")


@router.post(
    "/people/{person_id}/generate",
    response_model=ApiResponse[GenerateResultResponse],
    status_code=status.HTTP_201_CREATED,
)
async def generate_tasks(
    person_id: int,
    current_user: AdminUser,
    data: TaskGenerateRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Create the checklist for a leaver from the items they hold and the grants they have."""
    result = await OffboardingService(db).generate_for_person(
        person_id, data or TaskGenerateRequest(), current_user.id
    )
    return ApiResponse(
        data=GenerateResultResponse(
            created=[TaskResponse.model_validate(t) for t in result.created],
            skipped=result.skipped,
        ),
        message=f"Generated {len(result.created)} task(s)",
    )


@router.get("/tasks", response_model=ApiResponse[list[TaskResponse]])
async def list_tasks(
    current_user: AnyUser,
    person_id: int | None = Query(None),
    task_status: TaskStatus | None = Query(None, alias="status"),
    task_type: TaskType | None = Query(None),
    open_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    tasks = await OffboardingService(db).list_tasks(
        person_id=person_id, status=task_status, task_type=task_type, open_only=open_only
    )
    return ApiResponse(data=[TaskResponse.model_validate(t) for t in tasks])


@router.get("/tasks/{task_id}", response_model=ApiResponse[TaskResponse])
async def get_task(
    task_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    task = await OffboardingService(db).get_task(task_id)
    return ApiResponse(data=TaskResponse.model_validate(task))


@router.patch("/tasks/{task_id}/status", response_model=ApiResponse[TaskResponse])
async def update_task_status(
    task_id: int,
    data: TaskStatusUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Item collection: pending -> asset_collected (returns the item) -> completed.
    Access revocation and general: pending -> in_progress -> completed (revokes the grant)."""
    task = await OffboardingService(db).update_status(task_id, data, current_user)
    return ApiResponse(data=TaskResponse.model_validate(task))
