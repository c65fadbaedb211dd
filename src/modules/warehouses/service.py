"""Service for Warehouses module."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import ConflictError, DuplicateError, NotFoundError
from src.modules.custody.models import TransferStockAdjustment, TransferWarehouseAdjustment
from src.modules.items.models import Item
from src.modules.warehouses.models import Warehouse
from src.modules.warehouses.schemas import WarehouseCreate, WarehouseUpdate


class WarehouseService:
    """Service for managing warehouses."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def _ensure_unique_title(self, title: str, exclude_id: int | None = None) -> None:
        query = select(Warehouse.id).where(Warehouse.title == title)
        if exclude_id is not None:
            query = query.where(Warehouse.id != exclude_id)
        if (await self.db.execute(query)).scalar_one_or_none() is not None:
            raise DuplicateError("Warehouse", "title", title)

    async def create_warehouse(self, data: WarehouseCreate, created_by_id: int) -> Warehouse:
        await self._ensure_unique_title(data.title)
        warehouse = Warehouse(**data.model_dump())
        self.db.add(warehouse)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Warehouse",
            entity_id=warehouse.id,
            user_id=created_by_id,
            entity_identifier=warehouse.title,
            new_values=data.model_dump(),
        )
        await self.db.commit()
        return warehouse

    async def get_warehouse_by_id(self, warehouse_id: int) -> Warehouse:
        result = await self.db.execute(select(Warehouse).where(Warehouse.id == warehouse_id))
        warehouse = result.scalar_one_or_none()
        if not warehouse:
            raise NotFoundError("Warehouse", warehouse_id)
        return warehouse

    async def list_warehouses(self, search: str | None = None) -> list[Warehouse]:
        query = select(Warehouse).order_by(Warehouse.title)
        if search:
            query = query.where(Warehouse.title.ilike(f"%{search}%"))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_items(self, warehouse_id: int) -> int:
        """Items currently stored in the warehouse (not with a person)."""
        result = await self.db.execute(
            select(func.count())
            .select_from(Item)
            .where(Item.warehouse_id == warehouse_id)
            .where(Item.assigned_to_person_id.is_(None))
        )
        return result.scalar() or 0

    async def update_warehouse(
        self, warehouse_id: int, data: WarehouseUpdate, updated_by_id: int
    ) -> Warehouse:
        warehouse = await self.get_warehouse_by_id(warehouse_id)
        values = data.model_dump(exclude_unset=True)
        if values.get("title") and values["title"] != warehouse.title:
            await self._ensure_unique_title(values["title"], exclude_id=warehouse.id)

        old_values = {}
        new_values = {}
        for field, value in values.items():
            if value is None and field in ("title", "stock_qty"):
                continue
            if getattr(warehouse, field) != value:
                old_values[field] = getattr(warehouse, field)
                new_values[field] = value
                setattr(warehouse, field, value)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Warehouse",
                entity_id=warehouse.id,
                user_id=updated_by_id,
                entity_identifier=warehouse.title,
                old_values=old_values,
                new_values=new_values,
            )
            await self.db.commit()
        return warehouse

    async def delete_warehouse(self, warehouse_id: int, deleted_by_id: int) -> None:
        """Delete a warehouse no item refers to, including items out with people."""
        warehouse = await self.get_warehouse_by_id(warehouse_id)
        in_use = (
            await self.db.execute(
                select(func.count()).select_from(Item).where(Item.warehouse_id == warehouse_id)
            )
        ).scalar() or 0
        if in_use:
            raise ConflictError(
                f"Warehouse '{warehouse.title}' is referenced by {in_use} item(s)",
                details={"warehouse_id": warehouse_id, "items": in_use},
            )
        movements = (
            await self.db.execute(
                select(func.count())
                .select_from(TransferStockAdjustment)
                .where(
                    (TransferStockAdjustment.giving_warehouse_id == warehouse_id)
                    | (TransferStockAdjustment.returned_to_warehouse_id == warehouse_id)
                )
            )
        ).scalar() or 0
        movements += (
            await self.db.execute(
                select(func.count())
                .select_from(TransferWarehouseAdjustment)
                .where(
                    (TransferWarehouseAdjustment.giving_warehouse_id == warehouse_id)
                    | (TransferWarehouseAdjustment.receiving_warehouse_id == warehouse_id)
                )
            )
        ).scalar() or 0
        if movements:
            raise ConflictError(
                f"Warehouse '{warehouse.title}' has {movements} stock movement(s) on record",
                details={"warehouse_id": warehouse_id, "movements": movements},
            )

        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="Warehouse",
            entity_id=warehouse.id,
            user_id=deleted_by_id,
            entity_identifier=warehouse.title,
        )
        await self.db.delete(warehouse)
        await self.db.commit()
