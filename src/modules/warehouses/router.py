"""API endpoints for Warehouses module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, AnyUser, SuperAdminUser
from src.core.database.session import get_db
from src.modules.warehouses.schemas import WarehouseCreate, WarehouseResponse, WarehouseUpdate
from src.modules.warehouses.service import WarehouseService
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/warehouses", tags=["Warehouses"])


@router.post(
    "",
    response_model=ApiResponse[WarehouseResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_warehouse(
    data: WarehouseCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = WarehouseService(db)
    warehouse = await service.create_warehouse(data, current_user.id)
    return ApiResponse(
        message="Warehouse created successfully",
        data=WarehouseResponse.model_validate(warehouse),
    )


@router.get("", response_model=ApiResponse[list[WarehouseResponse]])
async def list_warehouses(
    current_user: AnyUser,
    search: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    service = WarehouseService(db)
    warehouses = await service.list_warehouses(search=search)
    return ApiResponse(data=[WarehouseResponse.model_validate(w) for w in warehouses])


@router.get("/{warehouse_id}", response_model=ApiResponse[WarehouseResponse])
async def get_warehouse(
    warehouse_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    """Get a warehouse with the number of items currently on its shelves."""
    service = WarehouseService(db)
    warehouse = await service.get_warehouse_by_id(warehouse_id)
    response = WarehouseResponse.model_validate(warehouse)
    response.item_count = await service.count_items(warehouse_id)
    return ApiResponse(data=response)


@router.patch("/{warehouse_id}", response_model=ApiResponse[WarehouseResponse])
async def update_warehouse(
    warehouse_id: int,
    data: WarehouseUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = WarehouseService(db)
    warehouse = await service.update_warehouse(warehouse_id, data, current_user.id)
    return ApiResponse(
        message="Warehouse updated successfully",
        data=WarehouseResponse.model_validate(warehouse),
    )


@router.delete("/{warehouse_id}", response_model=ApiResponse[None])
async def delete_warehouse(
    warehouse_id: int,
    current_user: SuperAdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = WarehouseService(db)
    await service.delete_warehouse(warehouse_id, current_user.id)
    return ApiResponse(data=None, message="Warehouse deleted")
