"""Service for Procurement module."""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import ConflictError, DuplicateError, NotFoundError
from src.modules.items.models import Item
from src.modules.procurement.models import Purchase, PurchaseStatus, Supplier
from src.modules.procurement.schemas import (
    PurchaseCreate,
    PurchaseUpdate,
    SupplierCreate,
    SupplierUpdate,
)


class ProcurementService:
    """Service for suppliers and purchases."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- Suppliers ---

    async def _ensure_unique_code(self, code: str | None, exclude_id: int | None = None) -> None:
        if not code:
            return
        query = select(Supplier.id).where(Supplier.supplier_code == code)
        if exclude_id is not None:
            query = query.where(Supplier.id != exclude_id)
        if (await self.db.execute(query)).scalar_one_or_none() is not None:
            raise DuplicateError("Supplier", "supplier_code", code)

    async def create_supplier(self, data: SupplierCreate, created_by_id: int) -> Supplier:
        await self._ensure_unique_code(data.supplier_code)
        supplier = Supplier(**data.model_dump())
        self.db.add(supplier)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Supplier",
            entity_id=supplier.id,
            user_id=created_by_id,
            entity_identifier=supplier.title,
        )
        await self.db.commit()
        return supplier

    async def get_supplier_by_id(self, supplier_id: int) -> Supplier:
        result = await self.db.execute(select(Supplier).where(Supplier.id == supplier_id))
        supplier = result.scalar_one_or_none()
        if not supplier:
            raise NotFoundError("Supplier", supplier_id)
        return supplier

    async def list_suppliers(self, search: str | None = None) -> list[Supplier]:
        query = select(Supplier).order_by(Supplier.title)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Supplier.title.ilike(pattern),
                    Supplier.supplier_code.ilike(pattern),
                    Supplier.contact_person.ilike(pattern),
                )
            )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_supplier(
        self, supplier_id: int, data: SupplierUpdate, updated_by_id: int
    ) -> Supplier:
        supplier = await self.get_supplier_by_id(supplier_id)
        values = data.model_dump(exclude_unset=True)
        if values.get("supplier_code") and values["supplier_code"] != supplier.supplier_code:
            await self._ensure_unique_code(values["supplier_code"], exclude_id=supplier.id)

        changed = {}
        for field, value in values.items():
            if field == "title" and value is None:
                continue
            if getattr(supplier, field) != value:
                changed[field] = value
                setattr(supplier, field, value)

        if changed:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Supplier",
                entity_id=supplier.id,
                user_id=updated_by_id,
                entity_identifier=supplier.title,
                new_values=changed,
            )
            await self.db.commit()
        return supplier

    async def delete_supplier(self, supplier_id: int, deleted_by_id: int) -> None:
        """Delete a supplier with no items or purchases attached."""
        supplier = await self.get_supplier_by_id(supplier_id)
        items = (
            await self.db.execute(
                select(func.count()).select_from(Item).where(Item.supplier_id == supplier_id)
            )
        ).scalar() or 0
        purchases = (
            await self.db.execute(
                select(func.count()).select_from(Purchase).where(Purchase.supplier_id == supplier_id)
            )
        ).scalar() or 0
        if items or purchases:
            raise ConflictError(
                f"Supplier '{supplier.title}' is still referenced",
                details={"items": items, "purchases": purchases},
            )

        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="Supplier",
            entity_id=supplier.id,
            user_id=deleted_by_id,
            entity_identifier=supplier.title,
        )
        await self.db.delete(supplier)
        await self.db.commit()

    # --- Purchases ---

    async def create_purchase(self, data: PurchaseCreate, created_by_id: int) -> Purchase:
        if data.supplier_id is not None:
            await self.get_supplier_by_id(data.supplier_id)

        purchase = Purchase(**data.model_dump(), status=PurchaseStatus.PENDING.value)
        self.db.add(purchase)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Purchase",
            entity_id=purchase.id,
            user_id=created_by_id,
            entity_identifier=purchase.reference_number,
            new_values={"products": purchase.products, "quantity": purchase.quantity},
        )
        await self.db.commit()
        return purchase

    async def get_purchase_by_id(self, purchase_id: int) -> Purchase:
        result = await self.db.execute(
            select(Purchase)
            .options(selectinload(Purchase.supplier))
            .where(Purchase.id == purchase_id)
            .execution_options(populate_existing=True)
        )
        purchase = result.scalar_one_or_none()
        if not purchase:
            raise NotFoundError("Purchase", purchase_id)
        return purchase

    async def list_purchases(
        self,
        status: PurchaseStatus | None = None,
        supplier_id: int | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Purchase], int]:
        query = select(Purchase).options(selectinload(Purchase.supplier))
        if status is not None:
            query = query.where(Purchase.status == status.value)
        if supplier_id is not None:
            query = query.where(Purchase.supplier_id == supplier_id)

        total = (
            await self.db.execute(select(func.count()).select_from(query.subquery()))
        ).scalar() or 0

        query = query.order_by(Purchase.created_at.desc(), Purchase.id.desc())
        query = query.offset((page - 1) * limit).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def update_purchase(
        self, purchase_id: int, data: PurchaseUpdate, updated_by_id: int
    ) -> Purchase:
        purchase = await self.get_purchase_by_id(purchase_id)
        values = data.model_dump(exclude_unset=True)
        if values.get("supplier_id") is not None:
            await self.get_supplier_by_id(values["supplier_id"])

        old_values = {}
        new_values = {}
        for field, value in values.items():
            if value is None and field in ("products", "quantity", "status"):
                continue
            if isinstance(value, PurchaseStatus):
                value = value.value
            if getattr(purchase, field) != value:
                old_values[field] = getattr(purchase, field)
                new_values[field] = value
                setattr(purchase, field, value)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Purchase",
                entity_id=purchase.id,
                user_id=updated_by_id,
                entity_identifier=purchase.reference_number,
                old_values=old_values,
                new_values=new_values,
            )
            await self.db.commit()
        return purchase

    async def delete_purchase(self, purchase_id: int, deleted_by_id: int) -> None:
        purchase = await self.get_purchase_by_id(purchase_id)
        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="Purchase",
            entity_id=purchase.id,
            user_id=deleted_by_id,
            entity_identifier=purchase.reference_number,
        )
        await self.db.delete(purchase)
        await self.db.commit()
