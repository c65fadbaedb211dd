"""API endpoints for Access module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, AnyUser
from src.core.database import get_db
from src.modules.access.models import AccessStatus, EmployeeAccess
from src.modules.access.schemas import (
    AccessCategoryCreate,
    AccessCategoryResponse,
    AccessCategoryUpdate,
    AccessItemCreate,
    AccessItemResponse,
    AccessItemUpdate,
    GrantRequest,
    GrantResponse,
    RevokeRequest,
)
from src.modules.access.service import AccessService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/access", tags=["Access"])


def _grant_to_response(grant: EmployeeAccess) -> GrantResponse:
    return GrantResponse(
        id=grant.id,
        person_id=grant.person_id,
        person_name=grant.person.title if grant.person else None,
        access_item_id=grant.access_item_id,
        access_item_name=grant.access_item.name if grant.access_item else None,
        status=grant.status,
        granted_date=grant.granted_date,
        revoked_date=grant.revoked_date,
        granted_by=grant.granted_by,
        revoked_by=grant.revoked_by,
        notes=grant.notes,
    )


# --- Categories ---


@router.post(
    "/categories",
    response_model=ApiResponse[AccessCategoryResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_access_category(
    data: AccessCategoryCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    category = await service.create_category(data, current_user.id)
    return ApiResponse(
        message="Access category created",
        data=AccessCategoryResponse.model_validate(category),
    )


@router.get("/categories", response_model=ApiResponse[list[AccessCategoryResponse]])
async def list_access_categories(
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    """Access categories with their items."""
    service = AccessService(db)
    categories = await service.list_categories()
    return ApiResponse(data=[AccessCategoryResponse.model_validate(c) for c in categories])


@router.patch("/categories/{category_id}", response_model=ApiResponse[AccessCategoryResponse])
async def update_access_category(
    category_id: int,
    data: AccessCategoryUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    category = await service.update_category(category_id, data, current_user.id)
    return ApiResponse(data=AccessCategoryResponse.model_validate(category))


@router.delete("/categories/{category_id}", response_model=ApiResponse[None])
async def delete_access_category(
    category_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    await service.delete_category(category_id, current_user.id)
    return ApiResponse(data=None, message="Access category deleted")


# --- Access items ---


@router.post(
    "/items",
    response_model=ApiResponse[AccessItemResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_access_item(
    data: AccessItemCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    access_item = await service.create_access_item(data, current_user.id)
    return ApiResponse(
        message="Access item created",
        data=AccessItemResponse.model_validate(access_item),
    )


@router.get("/items", response_model=ApiResponse[list[AccessItemResponse]])
async def list_access_items(
    current_user: AnyUser,
    category_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    access_items = await service.list_access_items(category_id=category_id)
    return ApiResponse(data=[AccessItemResponse.model_validate(a) for a in access_items])


@router.patch("/items/{access_item_id}", response_model=ApiResponse[AccessItemResponse])
async def update_access_item(
    access_item_id: int,
    data: AccessItemUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    access_item = await service.update_access_item(access_item_id, data, current_user.id)
    return ApiResponse(data=AccessItemResponse.model_validate(access_item))


@router.delete("/items/{access_item_id}", response_model=ApiResponse[None])
async def delete_access_item(
    access_item_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    await service.delete_access_item(access_item_id, current_user.id)
    return ApiResponse(data=None, message="Access item deleted")


# --- Grants ---


@router.post(
    "/grants",
    response_model=ApiResponse[GrantResponse],
    status_code=status.HTTP_201_CREATED,
)
async def grant_access(
    data: GrantRequest,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    grant = await service.grant(data, granted_by=current_user.full_name, user_id=current_user.id)
    return ApiResponse(message="Access granted", data=_grant_to_response(grant))


@router.post("/grants/{grant_id}/revoke", response_model=ApiResponse[GrantResponse])
async def revoke_access(
    grant_id: int,
    current_user: AdminUser,
    data: RevokeRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    await service.revoke(
        grant_id, data, revoked_by=current_user.full_name, user_id=current_user.id
    )
    grant = await service.get_grant(grant_id)
    return ApiResponse(message="Access revoked", data=_grant_to_response(grant))


@router.get("/grants", response_model=ApiResponse[PaginatedResponse[GrantResponse]])
async def list_grants(
    current_user: AnyUser,
    person_id: int | None = Query(None),
    access_item_id: int | None = Query(None),
    grant_status: AccessStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    grants, total = await service.list_grants(
        person_id=person_id,
        access_item_id=access_item_id,
        status=grant_status,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[_grant_to_response(g) for g in grants],
            total=total,
            page=page,
            limit=limit,
        )
    )


@router.get("/people/{person_id}/active", response_model=ApiResponse[list[GrantResponse]])
async def list_active_access(
    person_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = AccessService(db)
    grants = await service.list_active_for_person(person_id)
    return ApiResponse(data=[_grant_to_response(g) for g in grants])


@router.get("/people/{person_id}/history", response_model=ApiResponse[list[GrantResponse]])
async def list_access_history(
    person_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    """All grants of a person, newest first."""
    service = AccessService(db)
    grants = await service.list_history_for_person(person_id)
    return ApiResponse(data=[_grant_to_response(g) for g in grants])
