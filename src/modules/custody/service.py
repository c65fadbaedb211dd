"""Service for Custody module: assign, return, transfer, revert and relocation of items."""

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.config import settings
from src.core.database import atomic, lock_for_update
from src.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
)
from src.modules.custody.enforcer import LocationEnforcer
from src.modules.custody.models import (
    AdjustmentStatus,
    TransferStockAdjustment,
    TransferWarehouseAdjustment,
)
from src.modules.custody.schemas import (
    AssignRequest,
    RelocateRequest,
    ReturnRequest,
    TransferRequest,
)
from src.modules.items.models import Item, LocationType
from src.modules.people.models import Person
from src.modules.warehouses.models import Warehouse

logger = logging.getLogger(__name__)


class CustodyTransition(BaseModel):
    """Outcome of a custody transition: the item and the adjustment it opened or closed."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    item: Item
    adjustment: TransferStockAdjustment | None = None


class CustodyService:
    """Moves items between warehouses and people.

    Every transition locks the item row, validates the whole target state before
    writing, re-runs the location enforcer and commits once.
    """

    def __init__(self, db: AsyncSession, allow_implicit_reassignment: bool | None = None):
        self.db = db
        self.audit = AuditService(db)
        self.enforcer = LocationEnforcer(db)
        if allow_implicit_reassignment is None:
            allow_implicit_reassignment = settings.allow_implicit_reassignment
        self.allow_implicit_reassignment = allow_implicit_reassignment

    # --- Loading helpers ---

    async def _lock_item(self, item_id: int) -> Item:
        item = await self.enforcer.lock_item(item_id)
        if not item:
            raise NotFoundError("Item", item_id)
        return item

    async def _lock_person(self, person_id: int) -> Person:
        result = await self.db.execute(lock_for_update(select(Person).where(Person.id == person_id)))
        person = result.scalar_one_or_none()
        if not person:
            raise NotFoundError("Person", person_id)
        return person

    async def _lock_warehouse(self, warehouse_id: int) -> Warehouse:
        result = await self.db.execute(
            lock_for_update(select(Warehouse).where(Warehouse.id == warehouse_id))
        )
        warehouse = result.scalar_one_or_none()
        if not warehouse:
            raise NotFoundError("Warehouse", warehouse_id)
        return warehouse

    async def _active_adjustments(self, item_id: int) -> list[TransferStockAdjustment]:
        """Active adjustments of an item, newest first."""
        result = await self.db.execute(
            lock_for_update(
                select(TransferStockAdjustment)
                .where(TransferStockAdjustment.item_id == item_id)
                .where(TransferStockAdjustment.status == AdjustmentStatus.ACTIVE.value)
                .order_by(TransferStockAdjustment.created_at.desc(), TransferStockAdjustment.id.desc())
            )
        )
        return list(result.scalars().all())

    @staticmethod
    def _custody_snapshot(item: Item) -> dict:
        return {
            "current_location_type": item.current_location_type,
            "warehouse_id": item.warehouse_id,
            "assigned_to_person_id": item.assigned_to_person_id,
        }

    # --- Transitions ---

    async def assign(
        self,
        data: AssignRequest,
        user_id: int | None = None,
        commit: bool = True,
    ) -> CustodyTransition:
        """Warehouse -> person.

        An item already held by someone else is either rejected or, with
        allow_implicit_reassignment, transferred to the requested person.
        """
        async with atomic(self.db, action=f"assign item {data.item_id}", commit=commit):
            item = await self._lock_item(data.item_id)

            if item.assigned_to_person_id is not None:
                holder_id = item.assigned_to_person_id
                if holder_id == data.person_id:
                    raise ConflictError(
                        f"Item {item.id} is already assigned to person {holder_id}",
                        details={"item_id": item.id, "person_id": holder_id},
                    )
                if not self.allow_implicit_reassignment:
                    raise ConflictError(
                        f"Item {item.id} is assigned to person {holder_id}; "
                        "return or transfer it first",
                        details={"item_id": item.id, "person_id": holder_id},
                    )
                logger.info(
                    "Item %s held by person %s, reassigning to person %s as a transfer",
                    item.id,
                    holder_id,
                    data.person_id,
                )
                return await self._transfer(
                    item,
                    from_person_id=holder_id,
                    to_person_id=data.person_id,
                    notes=data.notes,
                    user_id=user_id,
                )

            person = await self._lock_person(data.person_id)
            if not person.is_active:
                raise ValidationError(
                    f"Person '{person.title}' is inactive and cannot receive items",
                    field="person_id",
                )

            if (
                data.warehouse_id is not None
                and item.warehouse_id is not None
                and data.warehouse_id != item.warehouse_id
            ):
                raise ConflictError(
                    f"Item {item.id} is stored in warehouse {item.warehouse_id}, "
                    f"not {data.warehouse_id}",
                    details={"item_id": item.id, "warehouse_id": item.warehouse_id},
                )
            warehouse_id = data.warehouse_id or item.warehouse_id
            if warehouse_id is None:
                raise InvariantViolationError(
                    "Item has no warehouse to be issued from", item_id=item.id
                )
            warehouse = await self._lock_warehouse(warehouse_id)

            qty = item.quantity
            if warehouse.stock_qty < qty:
                raise InsufficientStockError("warehouse", warehouse.id, qty, warehouse.stock_qty)
            self.enforcer.validate_custody(LocationType.PERSON, warehouse.id, person.id, item.id)

            old_values = self._custody_snapshot(item)
            warehouse.stock_qty -= qty
            person.stock_qty += qty
            item.warehouse_id = warehouse.id
            item.assigned_to_person_id = person.id
            self.enforcer.repair(item)

            adjustment = TransferStockAdjustment(
                item_id=item.id,
                person_id=person.id,
                giving_warehouse_id=warehouse.id,
                transfer_stock_qty=qty,
                status=AdjustmentStatus.ACTIVE.value,
                reference_number=data.reference_number,
                notes=data.notes,
                created_by_id=user_id,
            )
            self.db.add(adjustment)
            await self.db.flush()

            await self.audit.log(
                action=AuditAction.ASSIGN_ITEM,
                entity_type="Item",
                entity_id=item.id,
                user_id=user_id,
                entity_identifier=item.serial_number or item.title,
                old_values=old_values,
                new_values=self._custody_snapshot(item),
                comment=data.notes,
            )

        logger.info(
            "Assigned item %s from warehouse %s to person %s (qty=%s)",
            item.id,
            warehouse.id,
            person.id,
            qty,
        )
        return CustodyTransition(item=item, adjustment=adjustment)

    async def return_item(
        self,
        data: ReturnRequest,
        user_id: int | None = None,
        commit: bool = True,
    ) -> CustodyTransition:
        """Person -> warehouse.

        Target warehouse: the requested one, else the giving warehouse of the
        active adjustment, else the item's home warehouse.
        """
        async with atomic(self.db, action=f"return item {data.item_id}", commit=commit):
            item = await self._lock_item(data.item_id)
            if item.assigned_to_person_id is None:
                raise ConflictError(
                    f"Item {item.id} is not assigned to anyone",
                    details={"item_id": item.id},
                )

            adjustments = await self._active_adjustments(item.id)
            target_id = data.warehouse_id
            if target_id is None and adjustments:
                target_id = adjustments[0].giving_warehouse_id
            if target_id is None:
                target_id = item.warehouse_id

            closed = await self._move_to_warehouse(
                item,
                target_id,
                adjustments,
                closing_status=AdjustmentStatus.COMPLETED,
                action=AuditAction.RETURN_ITEM,
                user_id=user_id,
                notes=data.notes,
            )

        logger.info("Returned item %s to warehouse %s", item.id, item.warehouse_id)
        return CustodyTransition(item=item, adjustment=closed)

    async def transfer(
        self,
        data: TransferRequest,
        user_id: int | None = None,
        commit: bool = True,
    ) -> CustodyTransition:
        """Person -> person."""
        if data.from_person_id == data.to_person_id:
            raise ValidationError("Cannot transfer an item to its current holder", field="to_person_id")

        async with atomic(self.db, action=f"transfer item {data.item_id}", commit=commit):
            item = await self._lock_item(data.item_id)
            if item.assigned_to_person_id != data.from_person_id:
                raise ConflictError(
                    f"Item {item.id} is not held by person {data.from_person_id}",
                    details={
                        "item_id": item.id,
                        "assigned_to_person_id": item.assigned_to_person_id,
                    },
                )
            transition = await self._transfer(
                item,
                from_person_id=data.from_person_id,
                to_person_id=data.to_person_id,
                notes=data.notes,
                user_id=user_id,
            )
        return transition

    async def revert(
        self,
        adjustment_id: int,
        user_id: int | None = None,
        commit: bool = True,
    ) -> CustodyTransition:
        """Undo the current custody period of an item.

        The item goes back to the giving warehouse and the adjustment is kept
        with status 'reverted'.
        """
        async with atomic(self.db, action=f"revert adjustment {adjustment_id}", commit=commit):
            adjustment = (
                await self.db.execute(
                    select(TransferStockAdjustment).where(
                        TransferStockAdjustment.id == adjustment_id
                    )
                )
            ).scalar_one_or_none()
            if not adjustment:
                raise NotFoundError("Adjustment", adjustment_id)

            item = await self._lock_item(adjustment.item_id)
            adjustments = await self._active_adjustments(item.id)
            if adjustment not in adjustments:
                raise ConflictError(
                    f"Adjustment {adjustment_id} is {adjustment.status}; only active ones can be reverted",
                    details={"adjustment_id": adjustment_id, "status": adjustment.status},
                )
            if item.assigned_to_person_id != adjustment.person_id:
                raise ConflictError(
                    f"Item {item.id} is no longer held by person {adjustment.person_id}",
                    details={"item_id": item.id, "adjustment_id": adjustment_id},
                )

            # The reverted record gets its own status, stale duplicates are completed
            others = [a for a in adjustments if a.id != adjustment.id]
            await self._move_to_warehouse(
                item,
                adjustment.giving_warehouse_id or item.warehouse_id,
                others,
                closing_status=AdjustmentStatus.COMPLETED,
                action=AuditAction.REVERT_ASSIGNMENT,
                user_id=user_id,
                notes=f"Reverted adjustment {adjustment.id}",
            )
            adjustment.status = AdjustmentStatus.REVERTED.value
            adjustment.closed_at = datetime.now(timezone.utc)
            adjustment.returned_to_warehouse_id = item.warehouse_id
            await self.db.flush()

        logger.info("Reverted adjustment %s of item %s", adjustment.id, item.id)
        return CustodyTransition(item=item, adjustment=adjustment)

    async def relocate(
        self,
        data: RelocateRequest,
        user_id: int | None = None,
        commit: bool = True,
    ) -> tuple[Item, TransferWarehouseAdjustment]:
        """Warehouse -> warehouse. Items held by a person have to be returned first."""
        async with atomic(self.db, action=f"relocate item {data.item_id}", commit=commit):
            item = await self._lock_item(data.item_id)
            if item.assigned_to_person_id is not None:
                raise ConflictError(
                    f"Item {item.id} is held by person {item.assigned_to_person_id}; "
                    "return it first",
                    details={"item_id": item.id, "person_id": item.assigned_to_person_id},
                )
            if item.warehouse_id is None:
                raise InvariantViolationError(
                    "Item has no warehouse to be moved from", item_id=item.id
                )
            if data.to_warehouse_id == item.warehouse_id:
                raise ValidationError(
                    f"Item {item.id} is already in warehouse {item.warehouse_id}",
                    field="to_warehouse_id",
                )

            # Lock in id order
            first, second = sorted((item.warehouse_id, data.to_warehouse_id))
            locked = {
                first: await self._lock_warehouse(first),
                second: await self._lock_warehouse(second),
            }
            giving, receiving = locked[item.warehouse_id], locked[data.to_warehouse_id]

            qty = item.quantity
            if giving.stock_qty < qty:
                raise InsufficientStockError("warehouse", giving.id, qty, giving.stock_qty)
            self.enforcer.validate_custody(LocationType.WAREHOUSE, receiving.id, None, item.id)

            old_values = self._custody_snapshot(item)
            giving.stock_qty -= qty
            receiving.stock_qty += qty
            item.warehouse_id = receiving.id
            self.enforcer.repair(item)

            relocation = TransferWarehouseAdjustment(
                item_id=item.id,
                giving_warehouse_id=giving.id,
                receiving_warehouse_id=receiving.id,
                transfer_stock_qty=qty,
                reference_number=data.reference_number,
                notes=data.notes,
                created_by_id=user_id,
            )
            self.db.add(relocation)
            await self.db.flush()

            await self.audit.log(
                action=AuditAction.RELOCATE_ITEM,
                entity_type="Item",
                entity_id=item.id,
                user_id=user_id,
                entity_identifier=item.serial_number or item.title,
                old_values=old_values,
                new_values=self._custody_snapshot(item),
                comment=data.notes,
            )

        logger.info(
            "Relocated item %s from warehouse %s to warehouse %s (qty=%s)",
            item.id,
            giving.id,
            receiving.id,
            qty,
        )
        return item, relocation

    async def _transfer(
        self,
        item: Item,
        from_person_id: int,
        to_person_id: int,
        notes: str | None,
        user_id: int | None,
    ) -> CustodyTransition:
        """Move a locked item between people. The caller owns the transaction."""
        # Lock in id order
        first, second = sorted((from_person_id, to_person_id))
        locked = {first: await self._lock_person(first), second: await self._lock_person(second)}
        from_person, to_person = locked[from_person_id], locked[to_person_id]

        if not to_person.is_active:
            raise ValidationError(
                f"Person '{to_person.title}' is inactive and cannot receive items",
                field="to_person_id",
            )
        qty = item.quantity
        if from_person.stock_qty < qty:
            raise InsufficientStockError("person", from_person.id, qty, from_person.stock_qty)
        self.enforcer.validate_custody(LocationType.PERSON, item.warehouse_id, to_person.id, item.id)

        adjustments = await self._active_adjustments(item.id)
        giving_warehouse_id = (
            adjustments[0].giving_warehouse_id if adjustments else item.warehouse_id
        )

        old_values = self._custody_snapshot(item)
        from_person.stock_qty -= qty
        to_person.stock_qty += qty
        item.assigned_to_person_id = to_person.id
        self.enforcer.repair(item)

        now = datetime.now(timezone.utc)
        for previous in adjustments:
            previous.status = AdjustmentStatus.COMPLETED.value
            previous.closed_at = now

        adjustment = TransferStockAdjustment(
            item_id=item.id,
            person_id=to_person.id,
            from_person_id=from_person.id,
            giving_warehouse_id=giving_warehouse_id,
            transfer_stock_qty=qty,
            status=AdjustmentStatus.ACTIVE.value,
            notes=notes,
            created_by_id=user_id,
        )
        self.db.add(adjustment)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.TRANSFER_ITEM,
            entity_type="Item",
            entity_id=item.id,
            user_id=user_id,
            entity_identifier=item.serial_number or item.title,
            old_values=old_values,
            new_values=self._custody_snapshot(item),
            comment=notes,
        )
        logger.info(
            "Transferred item %s from person %s to person %s",
            item.id,
            from_person.id,
            to_person.id,
        )
        return CustodyTransition(item=item, adjustment=adjustment)

    async def _move_to_warehouse(
        self,
        item: Item,
        warehouse_id: int | None,
        adjustments: list[TransferStockAdjustment],
        closing_status: AdjustmentStatus,
        action: AuditAction,
        user_id: int | None,
        notes: str | None = None,
    ) -> TransferStockAdjustment | None:
        """Put a locked, person-held item back into a warehouse and close its adjustments.

        Returns the most recent closed adjustment, if any.
        """
        if warehouse_id is None:
            raise InvariantViolationError(
                "No warehouse to return the item to", item_id=item.id
            )
        warehouse = await self._lock_warehouse(warehouse_id)
        person = await self._lock_person(item.assigned_to_person_id)
        self.enforcer.validate_custody(LocationType.WAREHOUSE, warehouse.id, None, item.id)

        old_values = self._custody_snapshot(item)
        qty = item.quantity
        person.stock_qty = max(0, person.stock_qty - qty)
        warehouse.stock_qty += qty
        item.assigned_to_person_id = None
        item.warehouse_id = warehouse.id
        self.enforcer.repair(item)

        now = datetime.now(timezone.utc)
        for adjustment in adjustments:
            adjustment.status = closing_status.value
            adjustment.closed_at = now
            adjustment.returned_to_warehouse_id = warehouse.id
        await self.db.flush()

        await self.audit.log(
            action=action,
            entity_type="Item",
            entity_id=item.id,
            user_id=user_id,
            entity_identifier=item.serial_number or item.title,
            old_values=old_values,
            new_values=self._custody_snapshot(item),
            comment=notes,
        )
        return adjustments[0] if adjustments else None

    # --- Queries ---

    async def get_adjustment(self, adjustment_id: int) -> TransferStockAdjustment:
        result = await self.db.execute(
            select(TransferStockAdjustment)
            .options(
                selectinload(TransferStockAdjustment.item),
                selectinload(TransferStockAdjustment.person),
            )
            .where(TransferStockAdjustment.id == adjustment_id)
            .execution_options(populate_existing=True)
        )
        adjustment = result.scalar_one_or_none()
        if not adjustment:
            raise NotFoundError("Adjustment", adjustment_id)
        return adjustment

    async def list_adjustments(
        self,
        item_id: int | None = None,
        person_id: int | None = None,
        status: AdjustmentStatus | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[TransferStockAdjustment], int]:
        """List adjustments with optional filters, newest first."""
        query = select(TransferStockAdjustment).options(
            selectinload(TransferStockAdjustment.item),
            selectinload(TransferStockAdjustment.person),
        )

        if item_id is not None:
            query = query.where(TransferStockAdjustment.item_id == item_id)
        if person_id is not None:
            query = query.where(TransferStockAdjustment.person_id == person_id)
        if status is not None:
            query = query.where(TransferStockAdjustment.status == status.value)

        total = (
            await self.db.execute(select(func.count()).select_from(query.subquery()))
        ).scalar() or 0

        query = query.order_by(
            TransferStockAdjustment.created_at.desc(), TransferStockAdjustment.id.desc()
        )
        query = query.offset((page - 1) * limit).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_item_history(self, item_id: int) -> list[TransferStockAdjustment]:
        """All custody periods of an item, oldest first."""
        exists = await self.db.execute(select(Item.id).where(Item.id == item_id))
        if exists.scalar_one_or_none() is None:
            raise NotFoundError("Item", item_id)

        result = await self.db.execute(
            select(TransferStockAdjustment)
            .options(
                selectinload(TransferStockAdjustment.item),
                selectinload(TransferStockAdjustment.person),
            )
            .where(TransferStockAdjustment.item_id == item_id)
            .order_by(TransferStockAdjustment.created_at, TransferStockAdjustment.id)
        )
        return list(result.scalars().all())

    async def list_relocations(
        self,
        item_id: int | None = None,
        warehouse_id: int | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[TransferWarehouseAdjustment], int]:
        """Warehouse-to-warehouse moves, newest first. warehouse_id matches either side."""
        query = select(TransferWarehouseAdjustment)
        if item_id is not None:
            query = query.where(TransferWarehouseAdjustment.item_id == item_id)
        if warehouse_id is not None:
            query = query.where(
                (TransferWarehouseAdjustment.giving_warehouse_id == warehouse_id)
                | (TransferWarehouseAdjustment.receiving_warehouse_id == warehouse_id)
            )

        total = (
            await self.db.execute(select(func.count()).select_from(query.subquery()))
        ).scalar() or 0

        query = query.order_by(
            TransferWarehouseAdjustment.created_at.desc(), TransferWarehouseAdjustment.id.desc()
        )
        result = await self.db.execute(query.offset((page - 1) * limit).limit(limit))
        return list(result.scalars().all()), total
