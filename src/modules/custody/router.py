"""API endpoints for Custody module."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, AnyUser, SuperAdminUser
from src.core.database import get_db
from src.modules.custody.enforcer import LocationEnforcer
from src.modules.custody.models import AdjustmentStatus, TransferStockAdjustment
from src.modules.custody.schemas import (
    AdjustmentResponse,
    AssignRequest,
    CustodyStateResponse,
    ReconcileReport,
    ReconcileResult,
    RelocateRequest,
    RelocationResponse,
    ReleaseReport,
    ReturnRequest,
    TransferRequest,
)
from src.modules.custody.service import CustodyService, CustodyTransition
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/custody", tags=["Custody"])


def _adjustment_to_response(adjustment: TransferStockAdjustment) -> AdjustmentResponse:
    return AdjustmentResponse(
        id=adjustment.id,
        item_id=adjustment.item_id,
        item_title=adjustment.item.title if adjustment.item else None,
        person_id=adjustment.person_id,
        person_name=adjustment.person.title if adjustment.person else None,
        from_person_id=adjustment.from_person_id,
        giving_warehouse_id=adjustment.giving_warehouse_id,
        returned_to_warehouse_id=adjustment.returned_to_warehouse_id,
        transfer_stock_qty=adjustment.transfer_stock_qty,
        status=adjustment.status,
        reference_number=adjustment.reference_number,
        notes=adjustment.notes,
        created_by_id=adjustment.created_by_id,
        closed_at=adjustment.closed_at,
        created_at=adjustment.created_at,
    )


async def _transition_response(
    service: CustodyService, transition: CustodyTransition
) -> CustodyStateResponse:
    item = transition.item
    adjustment = None
    if transition.adjustment is not None:
        adjustment = _adjustment_to_response(
            await service.get_adjustment(transition.adjustment.id)
        )
    return CustodyStateResponse(
        item_id=item.id,
        current_location_type=item.current_location_type,
        warehouse_id=item.warehouse_id,
        assigned_to_person_id=item.assigned_to_person_id,
        adjustment=adjustment,
    )


# --- Transitions ---


@router.post("/assign", response_model=ApiResponse[CustodyStateResponse])
async def assign_item(
    data: AssignRequest,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Issue an item from its warehouse to a person."""
    service = CustodyService(db)
    transition = await service.assign(data, user_id=current_user.id)
    return ApiResponse(
        data=await _transition_response(service, transition),
        message="Item assigned",
    )


@router.post("/return", response_model=ApiResponse[CustodyStateResponse])
async def return_item(
    data: ReturnRequest,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Return an item from a person to a warehouse."""
    service = CustodyService(db)
    transition = await service.return_item(data, user_id=current_user.id)
    return ApiResponse(
        data=await _transition_response(service, transition),
        message="Item returned",
    )


@router.post("/transfer", response_model=ApiResponse[CustodyStateResponse])
async def transfer_item(
    data: TransferRequest,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Hand an item over from one person to another."""
    service = CustodyService(db)
    transition = await service.transfer(data, user_id=current_user.id)
    return ApiResponse(
        data=await _transition_response(service, transition),
        message="Item transferred",
    )


@router.post(
    "/adjustments/{adjustment_id}/revert",
    response_model=ApiResponse[CustodyStateResponse],
)
async def revert_adjustment(
    adjustment_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = CustodyService(db)
    transition = await service.revert(adjustment_id, user_id=current_user.id)
    return ApiResponse(
        data=await _transition_response(service, transition),
        message="Adjustment reverted",
    )


@router.post("/relocate", response_model=ApiResponse[RelocationResponse])
async def relocate_item(
    data: RelocateRequest,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Move an item that sits in a warehouse to another warehouse."""
    _, relocation = await CustodyService(db).relocate(data, user_id=current_user.id)
    return ApiResponse(
        data=RelocationResponse.model_validate(relocation),
        message="Item relocated",
    )


@router.get(
    "/relocations",
    response_model=ApiResponse[PaginatedResponse[RelocationResponse]],
)
async def list_relocations(
    current_user: AnyUser,
    item_id: int | None = Query(None),
    warehouse_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    relocations, total = await CustodyService(db).list_relocations(
        item_id=item_id, warehouse_id=warehouse_id, page=page, limit=limit
    )
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[RelocationResponse.model_validate(r) for r in relocations],
            total=total,
            page=page,
            limit=limit,
        )
    )


# --- Adjustments ---


@router.get(
    "/adjustments",
    response_model=ApiResponse[PaginatedResponse[AdjustmentResponse]],
)
async def list_adjustments(
    current_user: AnyUser,
    item_id: int | None = Query(None),
    person_id: int | None = Query(None),
    status: AdjustmentStatus | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    service = CustodyService(db)
    adjustments, total = await service.list_adjustments(
        item_id=item_id,
        person_id=person_id,
        status=status,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[_adjustment_to_response(a) for a in adjustments],
            total=total,
            page=page,
            limit=limit,
        )
    )


@router.get("/adjustments/{adjustment_id}", response_model=ApiResponse[AdjustmentResponse])
async def get_adjustment(
    adjustment_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = CustodyService(db)
    adjustment = await service.get_adjustment(adjustment_id)
    return ApiResponse(data=_adjustment_to_response(adjustment))


@router.get("/items/{item_id}/history", response_model=ApiResponse[list[AdjustmentResponse]])
async def get_item_history(
    item_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    """Custody periods of an item, oldest first."""
    service = CustodyService(db)
    history = await service.get_item_history(item_id)
    return ApiResponse(data=[_adjustment_to_response(a) for a in history])


# --- Repairs ---


@router.post("/reconcile/{item_id}", response_model=ApiResponse[ReconcileResult])
async def reconcile_item(
    item_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Repair the location flag of one item. Unknown ids are reported, not rejected."""
    result = await LocationEnforcer(db).reconcile(item_id, user_id=current_user.id)
    return ApiResponse(data=result)


@router.post("/reconcile", response_model=ApiResponse[ReconcileReport])
async def reconcile_all_items(
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Repair the location flag of every item; failures are listed in the report."""
    report = await LocationEnforcer(db).reconcile_all(user_id=current_user.id)
    return ApiResponse(
        data=report,
        message=f"{report.repaired} item(s) repaired",
    )


@router.post("/release-untracked", response_model=ApiResponse[ReleaseReport])
async def release_untracked_assignments(
    current_user: SuperAdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Return to their warehouse items held by people without an active adjustment."""
    report = await LocationEnforcer(db).release_untracked_assignments(user_id=current_user.id)
    return ApiResponse(
        data=report,
        message=f"{report.released} item(s) released",
    )
