"""API endpoints for Procurement module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, AnyUser
from src.core.database.session import get_db
from src.modules.procurement.models import Purchase, PurchaseStatus
from src.modules.procurement.schemas import (
    PurchaseCreate,
    PurchaseResponse,
    PurchaseUpdate,
    SupplierCreate,
    SupplierResponse,
    SupplierUpdate,
)
from src.modules.procurement.service import ProcurementService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/procurement", tags=["Procurement"])


def _purchase_to_response(purchase: Purchase) -> PurchaseResponse:
    return PurchaseResponse(
        id=purchase.id,
        products=purchase.products,
        quantity=purchase.quantity,
        supplier_id=purchase.supplier_id,
        supplier_title=purchase.supplier.title if purchase.supplier else None,
        reference_number=purchase.reference_number,
        notes=purchase.notes,
        status=purchase.status,
        created_at=purchase.created_at,
        updated_at=purchase.updated_at,
    )


# --- Supplier Endpoints ---


@router.post(
    "/suppliers",
    response_model=ApiResponse[SupplierResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_supplier(
    data: SupplierCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ProcurementService(db)
    supplier = await service.create_supplier(data, current_user.id)
    return ApiResponse(
        message="Supplier created successfully",
        data=SupplierResponse.model_validate(supplier),
    )


@router.get("/suppliers", response_model=ApiResponse[list[SupplierResponse]])
async def list_suppliers(
    current_user: AnyUser,
    search: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    service = ProcurementService(db)
    suppliers = await service.list_suppliers(search=search)
    return ApiResponse(data=[SupplierResponse.model_validate(s) for s in suppliers])


@router.get("/suppliers/{supplier_id}", response_model=ApiResponse[SupplierResponse])
async def get_supplier(
    supplier_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = ProcurementService(db)
    supplier = await service.get_supplier_by_id(supplier_id)
    return ApiResponse(data=SupplierResponse.model_validate(supplier))


@router.patch("/suppliers/{supplier_id}", response_model=ApiResponse[SupplierResponse])
async def update_supplier(
    supplier_id: int,
    data: SupplierUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ProcurementService(db)
    supplier = await service.update_supplier(supplier_id, data, current_user.id)
    return ApiResponse(
        message="Supplier updated successfully",
        data=SupplierResponse.model_validate(supplier),
    )


@router.delete("/suppliers/{supplier_id}", response_model=ApiResponse[None])
async def delete_supplier(
    supplier_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ProcurementService(db)
    await service.delete_supplier(supplier_id, current_user.id)
    return ApiResponse(data=None, message="Supplier deleted")


# --- Purchase Endpoints ---


@router.post(
    "/purchases",
    response_model=ApiResponse[PurchaseResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_purchase(
    data: PurchaseCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ProcurementService(db)
    purchase = await service.create_purchase(data, current_user.id)
    purchase = await service.get_purchase_by_id(purchase.id)
    return ApiResponse(
        message="Purchase created successfully",
        data=_purchase_to_response(purchase),
    )


@router.get("/purchases", response_model=ApiResponse[PaginatedResponse[PurchaseResponse]])
async def list_purchases(
    current_user: AnyUser,
    purchase_status: PurchaseStatus | None = Query(None, alias="status"),
    supplier_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    service = ProcurementService(db)
    purchases, total = await service.list_purchases(
        status=purchase_status,
        supplier_id=supplier_id,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[_purchase_to_response(p) for p in purchases],
            total=total,
            page=page,
            limit=limit,
        )
    )


@router.get("/purchases/{purchase_id}", response_model=ApiResponse[PurchaseResponse])
async def get_purchase(
    purchase_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = ProcurementService(db)
    purchase = await service.get_purchase_by_id(purchase_id)
    return ApiResponse(data=_purchase_to_response(purchase))


@router.patch("/purchases/{purchase_id}", response_model=ApiResponse[PurchaseResponse])
async def update_purchase(
    purchase_id: int,
    data: PurchaseUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ProcurementService(db)
    await service.update_purchase(purchase_id, data, current_user.id)
    purchase = await service.get_purchase_by_id(purchase_id)
    return ApiResponse(
        message="Purchase updated successfully",
        data=_purchase_to_response(purchase),
    )


@router.delete("/purchases/{purchase_id}", response_model=ApiResponse[None])
async def delete_purchase(
    purchase_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ProcurementService(db)
    await service.delete_purchase(purchase_id, current_user.id)
    return ApiResponse(data=None, message="Purchase deleted")
