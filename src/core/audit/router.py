from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.models import AuditLog
from src.core.audit.schemas import AuditLogResponse
from src.core.audit.service import AuditFilters, AuditService
from src.core.auth.dependencies import AdminUser
from src.core.database import get_db
from src.shared.schemas import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/audit-logs", tags=["Audit"])


def _to_response(entry: AuditLog, full_name: str | None) -> AuditLogResponse:
    return AuditLogResponse.model_validate(entry).model_copy(update={"user_full_name": full_name})


@router.get("", response_model=ApiResponse[PaginatedResponse[AuditLogResponse]])
async def list_audit_logs(
    current_user: AdminUser,
    entity_type: str | None = Query(None),
    entity_id: int | None = Query(None),
    action: str | None = Query(None),
    user_id: int | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    filters = AuditFilters(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        user_id=user_id,
        date_from=date_from,
        date_to=date_to,
    )
    rows, total = await AuditService(db).list_entries(filters, page=page, limit=limit)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[_to_response(entry, name) for entry, name in rows],
            total=total,
            page=page,
            limit=limit,
        )
    )


@router.get("/{entity_type}/{entity_id}", response_model=ApiResponse[list[AuditLogResponse]])
async def get_entity_trail(
    entity_type: str,
    entity_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Every recorded change to one record (e.g. /audit-logs/Item/42), oldest first."""
    rows = await AuditService(db).entity_trail(entity_type, entity_id)
    return ApiResponse(data=[_to_response(entry, name) for entry, name in rows])
