"""Location invariant enforcement for items.

An item is held by exactly one custodian:

* current_location_type == 'person'    <=> assigned_to_person_id is set
* current_location_type == 'warehouse' <=> assigned_to_person_id is null and
  warehouse_id is set

assigned_to_person_id is the source of truth; current_location_type is the
denormalized flag that gets repaired to match it.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.database import atomic, lock_for_update
from src.core.exceptions import AppException, InvariantViolationError, NotFoundError
from src.modules.custody.models import AdjustmentStatus, TransferStockAdjustment
from src.modules.custody.schemas import ItemFailure, ReconcileReport, ReconcileResult, ReleaseReport
from src.modules.items.models import Item, LocationType
from src.modules.people.models import Person
from src.modules.warehouses.models import Warehouse

logger = logging.getLogger(__name__)


class LocationEnforcer:
    """Validates and repairs item custody state."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- Pure checks ---

    @staticmethod
    def derive_location(item: Item) -> LocationType:
        if item.assigned_to_person_id is not None:
            return LocationType.PERSON
        return LocationType.WAREHOUSE

    @staticmethod
    def validate_custody(
        location_type: LocationType | str,
        warehouse_id: int | None,
        person_id: int | None,
        item_id: int | None = None,
    ) -> None:
        """Reject a custody triple that breaks the invariant."""
        if location_type == LocationType.PERSON:
            if person_id is None:
                raise InvariantViolationError(
                    "Item marked as held by a person must reference that person",
                    item_id=item_id,
                )
        elif location_type == LocationType.WAREHOUSE:
            if person_id is not None:
                raise InvariantViolationError(
                    "Item cannot be held by a warehouse and a person at the same time",
                    item_id=item_id,
                )
            if warehouse_id is None:
                raise InvariantViolationError(
                    "Item in a warehouse must reference that warehouse",
                    item_id=item_id,
                )
        else:
            raise InvariantViolationError(
                f"Unknown location type: {location_type}", item_id=item_id
            )

    def repair(self, item: Item) -> dict[str, dict[str, Any]]:
        """Bring current_location_type in line with assigned_to_person_id.

        Works on the loaded instance only, the caller flushes/commits. Returns
        the changed fields as {field: {"old": ..., "new": ...}}, empty when the
        item was already consistent.
        """
        expected = self.derive_location(item)
        person_id = item.assigned_to_person_id if expected == LocationType.PERSON else None
        self.validate_custody(expected, item.warehouse_id, person_id, item.id)

        changes: dict[str, dict[str, Any]] = {}
        if item.current_location_type != expected.value:
            changes["current_location_type"] = {
                "old": item.current_location_type,
                "new": expected.value,
            }
            item.current_location_type = expected.value
        return changes

    # --- Persistence ---

    async def lock_item(self, item_id: int) -> Item | None:
        result = await self.db.execute(lock_for_update(select(Item).where(Item.id == item_id)))
        return result.scalar_one_or_none()

    async def reconcile(self, item_id: int, user_id: int | None = None) -> ReconcileResult:
        """Repair one item in its own transaction. Idempotent.

        A missing item is a no-op reported as found=False.
        """
        async with atomic(self.db, action=f"reconcile item {item_id}"):
            item = await self.lock_item(item_id)
            if item is None:
                logger.info("Reconcile skipped, item %s not found", item_id)
                return ReconcileResult(item_id=item_id, found=False, repaired=False)

            changes = self.repair(item)
            if changes:
                await self.audit.log(
                    action=AuditAction.RECONCILE_LOCATION,
                    entity_type="Item",
                    entity_id=item.id,
                    user_id=user_id,
                    entity_identifier=item.serial_number or item.title,
                    old_values={k: v["old"] for k, v in changes.items()},
                    new_values={k: v["new"] for k, v in changes.items()},
                )
                logger.warning("Repaired location of item %s: %s", item.id, changes)

        return ReconcileResult(item_id=item_id, found=True, repaired=bool(changes), changes=changes)

    async def reconcile_all(self, user_id: int | None = None) -> ReconcileReport:
        """Reconcile every item independently.

        Each item commits on its own; a failure is rolled back, recorded in the
        report and does not stop the remaining items.
        """
        item_ids = list((await self.db.execute(select(Item.id).order_by(Item.id))).scalars().all())
        report = ReconcileReport(total=len(item_ids))

        for item_id in item_ids:
            try:
                result = await self.reconcile(item_id, user_id=user_id)
            except AppException as exc:
                logger.error("Reconcile failed for item %s: %s", item_id, exc.message)
                report.failed += 1
                report.failures.append(
                    ItemFailure(item_id=item_id, error=exc.error, message=exc.message)
                )
                continue

            if not result.found:
                # Deleted while the batch was running
                report.total -= 1
            elif result.repaired:
                report.repaired += 1
            else:
                report.already_correct += 1

        logger.info(
            "Location reconciliation finished: total=%s repaired=%s already_correct=%s failed=%s",
            report.total,
            report.repaired,
            report.already_correct,
            report.failed,
        )
        return report

    async def release_untracked_assignments(self, user_id: int | None = None) -> ReleaseReport:
        """Return to their warehouse all person-held items with no active adjustment.

        Items are processed independently like reconcile_all.
        """
        tracked = select(TransferStockAdjustment.item_id).where(
            TransferStockAdjustment.status == AdjustmentStatus.ACTIVE.value
        )
        item_ids = list(
            (
                await self.db.execute(
                    select(Item.id)
                    .where(Item.assigned_to_person_id.is_not(None))
                    .where(Item.id.not_in(tracked))
                    .order_by(Item.id)
                )
            )
            .scalars()
            .all()
        )
        report = ReleaseReport(total=len(item_ids))

        for item_id in item_ids:
            try:
                released = await self._release_one(item_id, user_id)
            except AppException as exc:
                logger.error("Release failed for item %s: %s", item_id, exc.message)
                report.failed += 1
                report.failures.append(
                    ItemFailure(item_id=item_id, error=exc.error, message=exc.message)
                )
                continue
            if released:
                report.released += 1
                report.released_item_ids.append(item_id)

        logger.info(
            "Released %s of %s untracked assignments (%s failed)",
            report.released,
            report.total,
            report.failed,
        )
        return report

    async def _release_one(self, item_id: int, user_id: int | None) -> bool:
        async with atomic(self.db, action=f"release item {item_id}"):
            item = await self.lock_item(item_id)
            if item is None or item.assigned_to_person_id is None:
                return False

            active = await self.db.execute(
                select(TransferStockAdjustment.id)
                .where(TransferStockAdjustment.item_id == item_id)
                .where(TransferStockAdjustment.status == AdjustmentStatus.ACTIVE.value)
                .limit(1)
            )
            if active.scalar_one_or_none() is not None:
                # Tracked again since the candidate list was built
                return False

            self.validate_custody(LocationType.WAREHOUSE, item.warehouse_id, None, item.id)
            warehouse = (
                await self.db.execute(
                    lock_for_update(select(Warehouse).where(Warehouse.id == item.warehouse_id))
                )
            ).scalar_one_or_none()
            if warehouse is None:
                raise NotFoundError("Warehouse", item.warehouse_id)
            person = (
                await self.db.execute(
                    lock_for_update(select(Person).where(Person.id == item.assigned_to_person_id))
                )
            ).scalar_one_or_none()

            person_id = item.assigned_to_person_id
            if person is not None:
                person.stock_qty = max(0, person.stock_qty - item.quantity)
            warehouse.stock_qty += item.quantity
            item.assigned_to_person_id = None
            self.repair(item)

            await self.audit.log(
                action=AuditAction.RELEASE_UNTRACKED,
                entity_type="Item",
                entity_id=item.id,
                user_id=user_id,
                entity_identifier=item.serial_number or item.title,
                old_values={"assigned_to_person_id": person_id},
                new_values={"warehouse_id": warehouse.id},
            )
        return True
