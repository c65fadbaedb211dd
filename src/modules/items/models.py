"""Item and item reference data (category, brand, unit) models."""

from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel


class LocationType(StrEnum):
    """Which kind of custodian currently holds an item."""

    WAREHOUSE = "warehouse"
    PERSON = "person"


class Category(BaseModel):
    """Item category (laptops, monitors, phones...)."""

    __tablename__ = "categories"

    title: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Brand(BaseModel):
    __tablename__ = "brands"

    title: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class Unit(BaseModel):
    """Unit of measure (piece, box, set)."""

    __tablename__ = "units"

    title: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    abbreviation: Mapped[str] = mapped_column(String(20), nullable=False)


class Item(BaseModel):
    """Physical asset.

    Custody is held by exactly one of: the warehouse (warehouse_id, while
    current_location_type='warehouse') or a person (assigned_to_person_id, while
    current_location_type='person'). While with a person, warehouse_id keeps the
    warehouse the item came from.
    """

    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_items_quantity_positive"),
        CheckConstraint(
            "current_location_type IN ('warehouse', 'person')",
            name="ck_items_location_type",
        ),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    category_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("categories.id"), nullable=False, index=True
    )
    brand_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("brands.id"), nullable=True
    )
    unit_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("units.id"), nullable=True
    )
    supplier_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("suppliers.id"), nullable=True
    )

    # Custody
    warehouse_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("warehouses.id"), nullable=True, index=True
    )
    assigned_to_person_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("people.id"), nullable=True, index=True
    )
    current_location_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LocationType.WAREHOUSE.value, index=True
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    serial_number: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    barcode: Mapped[str | None] = mapped_column(String(100), nullable=True)
    asset_tag: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    buying_price: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    category: Mapped["Category"] = relationship("Category")
    brand: Mapped["Brand | None"] = relationship("Brand")
    unit: Mapped["Unit | None"] = relationship("Unit")
    supplier: Mapped["Supplier | None"] = relationship("Supplier")
    warehouse: Mapped["Warehouse | None"] = relationship("Warehouse")
    assigned_to_person: Mapped["Person | None"] = relationship("Person")

    @property
    def is_with_person(self) -> bool:
        return self.assigned_to_person_id is not None


# Import at the end to avoid circular imports
from src.modules.people.models import Person
from src.modules.procurement.models import Supplier
from src.modules.warehouses.models import Warehouse
