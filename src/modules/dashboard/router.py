from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser
from src.core.database import get_db
from src.modules.dashboard.schemas import DashboardResponse
from src.modules.dashboard.service import DashboardService
from src.shared.schemas import ApiResponse

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=ApiResponse[DashboardResponse])
async def get_summary(current_user: AdminUser, db: AsyncSession = Depends(get_db)):
    """Stock and custody counters plus consistency alerts. Users without a manager role get 403."""
    summary = await DashboardService(db).get_summary()
    return ApiResponse(data=DashboardResponse(**summary))
