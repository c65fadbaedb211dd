"""Service for Items module."""

import logging
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.database import lock_for_update
from src.core.exceptions import ConflictError, DuplicateError, NotFoundError
from src.modules.custody.enforcer import LocationEnforcer
from src.modules.custody.models import TransferStockAdjustment, TransferWarehouseAdjustment
from src.modules.items.models import Brand, Category, Item, LocationType, Unit
from src.modules.items.schemas import (
    BrandCreate,
    BrandUpdate,
    CategoryCreate,
    CategoryUpdate,
    ItemCreate,
    ItemUpdate,
    UnitCreate,
    UnitUpdate,
)
from src.modules.procurement.models import Supplier
from src.modules.warehouses.models import Warehouse

logger = logging.getLogger(__name__)

ReferenceModel = type[Category] | type[Brand] | type[Unit]


class ItemService:
    """Service for managing items and their reference data (categories, brands, units)."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- Reference data helpers ---

    async def _get_reference(self, model: ReferenceModel, ref_id: int):
        result = await self.db.execute(select(model).where(model.id == ref_id))
        obj = result.scalar_one_or_none()
        if not obj:
            raise NotFoundError(model.__name__, ref_id)
        return obj

    async def _ensure_unique_title(
        self, model: ReferenceModel, title: str, exclude_id: int | None = None
    ) -> None:
        query = select(model.id).where(model.title == title)
        if exclude_id is not None:
            query = query.where(model.id != exclude_id)
        if (await self.db.execute(query)).scalar_one_or_none() is not None:
            raise DuplicateError(model.__name__, "title", title)

    async def _create_reference(self, model: ReferenceModel, values: dict[str, Any], user_id: int):
        await self._ensure_unique_title(model, values["title"])
        obj = model(**values)
        self.db.add(obj)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type=model.__name__,
            entity_id=obj.id,
            user_id=user_id,
            entity_identifier=obj.title,
            new_values=values,
        )
        await self.db.commit()
        return obj

    async def _update_reference(
        self, model: ReferenceModel, ref_id: int, values: dict[str, Any], user_id: int
    ):
        obj = await self._get_reference(model, ref_id)
        if values.get("title") and values["title"] != obj.title:
            await self._ensure_unique_title(model, values["title"], exclude_id=obj.id)

        old_values = {}
        new_values = {}
        for field, value in values.items():
            if value is None and field in ("title", "abbreviation"):
                continue
            if getattr(obj, field) != value:
                old_values[field] = getattr(obj, field)
                new_values[field] = value
                setattr(obj, field, value)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type=model.__name__,
                entity_id=obj.id,
                user_id=user_id,
                entity_identifier=obj.title,
                old_values=old_values,
                new_values=new_values,
            )
            await self.db.commit()
        return obj

    async def _delete_reference(
        self, model: ReferenceModel, ref_id: int, item_column, user_id: int
    ) -> None:
        obj = await self._get_reference(model, ref_id)
        in_use = (
            await self.db.execute(select(func.count()).select_from(Item).where(item_column == ref_id))
        ).scalar() or 0
        if in_use:
            raise ConflictError(
                f"{model.__name__} '{obj.title}' is used by {in_use} item(s)",
                details={"id": ref_id, "items": in_use},
            )
        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type=model.__name__,
            entity_id=obj.id,
            user_id=user_id,
            entity_identifier=obj.title,
        )
        await self.db.delete(obj)
        await self.db.commit()

    # --- Category Methods ---

    async def create_category(self, data: CategoryCreate, created_by_id: int) -> Category:
        return await self._create_reference(Category, data.model_dump(), created_by_id)

    async def get_category_by_id(self, category_id: int) -> Category:
        return await self._get_reference(Category, category_id)

    async def list_categories(self) -> list[Category]:
        result = await self.db.execute(select(Category).order_by(Category.title))
        return list(result.scalars().all())

    async def update_category(
        self, category_id: int, data: CategoryUpdate, updated_by_id: int
    ) -> Category:
        return await self._update_reference(
            Category, category_id, data.model_dump(exclude_unset=True), updated_by_id
        )

    async def delete_category(self, category_id: int, deleted_by_id: int) -> None:
        """Delete a category that no item uses."""
        await self._delete_reference(Category, category_id, Item.category_id, deleted_by_id)

    # --- Brand Methods ---

    async def create_brand(self, data: BrandCreate, created_by_id: int) -> Brand:
        return await self._create_reference(Brand, data.model_dump(), created_by_id)

    async def get_brand_by_id(self, brand_id: int) -> Brand:
        return await self._get_reference(Brand, brand_id)

    async def list_brands(self) -> list[Brand]:
        result = await self.db.execute(select(Brand).order_by(Brand.title))
        return list(result.scalars().all())

    async def update_brand(self, brand_id: int, data: BrandUpdate, updated_by_id: int) -> Brand:
        return await self._update_reference(
            Brand, brand_id, data.model_dump(exclude_unset=True), updated_by_id
        )

    async def delete_brand(self, brand_id: int, deleted_by_id: int) -> None:
        await self._delete_reference(Brand, brand_id, Item.brand_id, deleted_by_id)

    # --- Unit Methods ---

    async def create_unit(self, data: UnitCreate, created_by_id: int) -> Unit:
        return await self._create_reference(Unit, data.model_dump(), created_by_id)

    async def get_unit_by_id(self, unit_id: int) -> Unit:
        return await self._get_reference(Unit, unit_id)

    async def list_units(self) -> list[Unit]:
        result = await self.db.execute(select(Unit).order_by(Unit.title))
        return list(result.scalars().all())

    async def update_unit(self, unit_id: int, data: UnitUpdate, updated_by_id: int) -> Unit:
        return await self._update_reference(
            Unit, unit_id, data.model_dump(exclude_unset=True), updated_by_id
        )

    async def delete_unit(self, unit_id: int, deleted_by_id: int) -> None:
        await self._delete_reference(Unit, unit_id, Item.unit_id, deleted_by_id)

    # --- Item Methods ---

    async def _check_references(self, data: ItemCreate | ItemUpdate) -> None:
        """Raise NotFoundError for any referenced row that does not exist."""
        checks = (
            (Category, data.category_id),
            (Brand, data.brand_id),
            (Unit, data.unit_id),
            (Supplier, data.supplier_id),
        )
        for model, ref_id in checks:
            if ref_id is None:
                continue
            exists = await self.db.execute(select(model.id).where(model.id == ref_id))
            if exists.scalar_one_or_none() is None:
                raise NotFoundError(model.__name__, ref_id)

    async def create_item(self, data: ItemCreate, created_by_id: int) -> Item:
        """Register an item in a warehouse. The warehouse stock grows by its quantity."""
        await self._check_references(data)
        warehouse = (
            await self.db.execute(
                lock_for_update(select(Warehouse).where(Warehouse.id == data.warehouse_id))
            )
        ).scalar_one_or_none()
        if not warehouse:
            raise NotFoundError("Warehouse", data.warehouse_id)

        LocationEnforcer.validate_custody(LocationType.WAREHOUSE, warehouse.id, None)

        item = Item(
            **data.model_dump(),
            assigned_to_person_id=None,
            current_location_type=LocationType.WAREHOUSE.value,
        )
        self.db.add(item)
        warehouse.stock_qty += item.quantity
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Item",
            entity_id=item.id,
            user_id=created_by_id,
            entity_identifier=item.serial_number or item.title,
            new_values={
                "title": item.title,
                "warehouse_id": warehouse.id,
                "quantity": item.quantity,
            },
        )
        await self.db.commit()
        logger.info("Created item %s in warehouse %s", item.id, warehouse.id)
        return item

    async def get_item_by_id(self, item_id: int) -> Item:
        """Get item by ID with its display relations loaded."""
        result = await self.db.execute(
            select(Item)
            .options(
                selectinload(Item.category),
                selectinload(Item.brand),
                selectinload(Item.warehouse),
                selectinload(Item.assigned_to_person),
            )
            .where(Item.id == item_id)
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()
        if not item:
            raise NotFoundError("Item", item_id)
        return item

    async def list_items(
        self,
        location_type: LocationType | None = None,
        warehouse_id: int | None = None,
        person_id: int | None = None,
        category_id: int | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Item], int]:
        """List items with optional filters."""
        query = select(Item).options(
            selectinload(Item.category),
            selectinload(Item.brand),
            selectinload(Item.warehouse),
            selectinload(Item.assigned_to_person),
        )

        if location_type is not None:
            query = query.where(Item.current_location_type == location_type.value)
        if warehouse_id is not None:
            query = query.where(Item.warehouse_id == warehouse_id)
        if person_id is not None:
            query = query.where(Item.assigned_to_person_id == person_id)
        if category_id is not None:
            query = query.where(Item.category_id == category_id)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Item.title.ilike(pattern),
                    Item.serial_number.ilike(pattern),
                    Item.asset_tag.ilike(pattern),
                    Item.barcode.ilike(pattern),
                )
            )

        total = (
            await self.db.execute(select(func.count()).select_from(query.subquery()))
        ).scalar() or 0

        query = query.order_by(Item.title, Item.id).offset((page - 1) * limit).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def update_item(self, item_id: int, data: ItemUpdate, updated_by_id: int) -> Item:
        """Update descriptive fields. Custody never changes here."""
        item = await self.get_item_by_id(item_id)
        await self._check_references(data)

        old_values = {}
        new_values = {}
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("title", "category_id"):
                continue
            current = getattr(item, field)
            if current != value:
                old_values[field] = str(current) if current is not None else None
                new_values[field] = str(value) if value is not None else None
                setattr(item, field, value)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Item",
                entity_id=item.id,
                user_id=updated_by_id,
                entity_identifier=item.serial_number or item.title,
                old_values=old_values,
                new_values=new_values,
            )
            await self.db.commit()
        return item

    async def delete_item(self, item_id: int, deleted_by_id: int) -> None:
        """Delete an item sitting in a warehouse that never left it."""
        item = (
            await self.db.execute(lock_for_update(select(Item).where(Item.id == item_id)))
        ).scalar_one_or_none()
        if not item:
            raise NotFoundError("Item", item_id)
        if item.assigned_to_person_id is not None:
            raise ConflictError(
                f"Item {item.id} is assigned to person {item.assigned_to_person_id}; return it first",
                details={"item_id": item.id, "person_id": item.assigned_to_person_id},
            )
        history = (
            await self.db.execute(
                select(func.count())
                .select_from(TransferStockAdjustment)
                .where(TransferStockAdjustment.item_id == item.id)
            )
        ).scalar() or 0
        history += (
            await self.db.execute(
                select(func.count())
                .select_from(TransferWarehouseAdjustment)
                .where(TransferWarehouseAdjustment.item_id == item.id)
            )
        ).scalar() or 0
        if history:
            raise ConflictError(
                f"Item {item.id} has custody history and cannot be deleted",
                details={"item_id": item.id, "adjustments": history},
            )

        if item.warehouse_id is not None:
            warehouse = (
                await self.db.execute(
                    lock_for_update(select(Warehouse).where(Warehouse.id == item.warehouse_id))
                )
            ).scalar_one_or_none()
            if warehouse:
                warehouse.stock_qty = max(0, warehouse.stock_qty - item.quantity)

        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="Item",
            entity_id=item.id,
            user_id=deleted_by_id,
            entity_identifier=item.serial_number or item.title,
            old_values={"title": item.title, "warehouse_id": item.warehouse_id},
        )
        await self.db.delete(item)
        await self.db.commit()
        logger.info("Deleted item %s", item_id)
