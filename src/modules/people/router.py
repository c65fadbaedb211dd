"""API endpoints for People module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, AnyUser, SuperAdminUser
from src.core.database import get_db
from src.modules.access.router import _grant_to_response
from src.modules.custody.router import _adjustment_to_response
from src.modules.people.models import PersonStatus
from src.modules.people.schemas import (
    DemobSummaryResponse,
    HeldItemResponse,
    OpenTaskResponse,
    PersonCreate,
    PersonProfileResponse,
    PersonResponse,
    PersonUpdate,
)
from src.modules.people.service import PersonService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/people", tags=["People"])


@router.post(
    "",
    response_model=ApiResponse[PersonResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_person(
    data: PersonCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = PersonService(db)
    person = await service.create_person(data, current_user.id)
    return ApiResponse(
        message="Person created successfully",
        data=PersonResponse.model_validate(person),
    )


@router.get("", response_model=ApiResponse[PaginatedResponse[PersonResponse]])
async def list_people(
    current_user: AnyUser,
    search: str | None = Query(None, description="Name or email"),
    person_status: PersonStatus | None = Query(None, alias="status"),
    department: str | None = Query(None),
    contract_ends_before: date | None = Query(None, description="Contracts ending on or before"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    service = PersonService(db)
    people, total = await service.list_people(
        search=search,
        status=person_status,
        department=department,
        contract_ends_before=contract_ends_before,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[PersonResponse.model_validate(p) for p in people],
            total=total,
            page=page,
            limit=limit,
        )
    )


@router.get("/{person_id}", response_model=ApiResponse[PersonResponse])
async def get_person(
    person_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = PersonService(db)
    person = await service.get_person_by_id(person_id)
    return ApiResponse(data=PersonResponse.model_validate(person))


@router.get("/{person_id}/profile", response_model=ApiResponse[PersonProfileResponse])
async def get_person_profile(
    person_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    """Person with held items, active accesses and demobilization documents."""
    service = PersonService(db)
    profile = await service.get_profile(person_id)
    return ApiResponse(
        data=PersonProfileResponse(
            person=PersonResponse.model_validate(profile.person),
            items=[HeldItemResponse.model_validate(i) for i in profile.items],
            active_accesses=[_grant_to_response(g) for g in profile.active_accesses],
            active_adjustments=[_adjustment_to_response(a) for a in profile.active_adjustments],
            demob_documents=[DemobSummaryResponse.model_validate(d) for d in profile.demob_documents],
            open_tasks=[OpenTaskResponse.model_validate(t) for t in profile.open_tasks],
        )
    )


@router.patch("/{person_id}", response_model=ApiResponse[PersonResponse])
async def update_person(
    person_id: int,
    data: PersonUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = PersonService(db)
    person = await service.update_person(person_id, data, current_user.id)
    return ApiResponse(
        message="Person updated successfully",
        data=PersonResponse.model_validate(person),
    )


@router.delete("/{person_id}", response_model=ApiResponse[None])
async def delete_person(
    person_id: int,
    current_user: SuperAdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Delete a person without any custody or access records."""
    service = PersonService(db)
    await service.delete_person(person_id, current_user.id)
    return ApiResponse(data=None, message="Person deleted")
