"""Service for dashboard summary (Admin/SuperAdmin main page)."""

from datetime import date, timedelta

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.modules.access.models import AccessStatus, EmployeeAccess
from src.modules.custody.models import AdjustmentStatus, TransferStockAdjustment
from src.modules.items.models import Item, LocationType
from src.modules.offboarding.models import OPEN_STATUSES, OffboardingTask
from src.modules.people.models import Person, PersonStatus
from src.modules.procurement.models import Purchase, PurchaseStatus
from src.modules.warehouses.models import Warehouse


class DashboardService:
    """Aggregates data for main page: cards, key metrics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, model, *conditions) -> int:
        result = await self.db.execute(select(func.count()).select_from(model).where(*conditions))
        return result.scalar() or 0

    async def get_summary(self) -> dict:
        """
        Build dashboard summary.

        Queries run one after another, a single AsyncSession does not
        support concurrent use.
        """
        items_by_location = dict(
            (
                await self.db.execute(
                    select(Item.current_location_type, func.count()).group_by(
                        Item.current_location_type
                    )
                )
            ).all()
        )
        people_by_status = dict(
            (await self.db.execute(select(Person.status, func.count()).group_by(Person.status))).all()
        )
        purchases = dict(
            (
                await self.db.execute(
                    select(Purchase.status, func.count()).group_by(Purchase.status)
                )
            ).all()
        )

        # Flag disagrees with assigned_to_person_id
        mismatches = await self._count(
            Item,
            or_(
                and_(
                    Item.assigned_to_person_id.is_not(None),
                    Item.current_location_type != LocationType.PERSON.value,
                ),
                and_(
                    Item.assigned_to_person_id.is_(None),
                    Item.current_location_type != LocationType.WAREHOUSE.value,
                ),
            ),
        )
        tracked = select(TransferStockAdjustment.item_id).where(
            TransferStockAdjustment.status == AdjustmentStatus.ACTIVE.value
        )
        untracked = await self._count(
            Item,
            Item.assigned_to_person_id.is_not(None),
            Item.id.not_in(tracked),
        )

        alert_until = date.today() + timedelta(days=settings.contract_alert_days)
        expiring = await self._count(
            Person,
            Person.status == PersonStatus.ACTIVE.value,
            Person.contract_end_date.is_not(None),
            Person.contract_end_date <= alert_until,
        )

        in_warehouses = items_by_location.get(LocationType.WAREHOUSE.value, 0)
        with_people = items_by_location.get(LocationType.PERSON.value, 0)
        return {
            "items_total": sum(items_by_location.values()),
            "items_in_warehouses": in_warehouses,
            "items_with_people": with_people,
            "warehouses_count": await self._count(Warehouse),
            "active_people_count": people_by_status.get(PersonStatus.ACTIVE.value, 0),
            "inactive_people_count": people_by_status.get(PersonStatus.INACTIVE.value, 0),
            "active_adjustments_count": await self._count(
                TransferStockAdjustment,
                TransferStockAdjustment.status == AdjustmentStatus.ACTIVE.value,
            ),
            "active_grants_count": await self._count(
                EmployeeAccess, EmployeeAccess.status == AccessStatus.ACTIVE.value
            ),
            "purchases_by_status": {s.value: purchases.get(s.value, 0) for s in PurchaseStatus},
            "location_mismatch_count": mismatches,
            "untracked_assignments_count": untracked,
            "open_offboarding_tasks_count": await self._count(
                OffboardingTask,
                OffboardingTask.status.in_([s.value for s in OPEN_STATUSES]),
            ),
            "contracts_expiring_count": expiring,
        }
