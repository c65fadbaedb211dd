"""Custody movement records."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel


class AdjustmentStatus(StrEnum):
    """TransferStockAdjustment status enumeration."""

    ACTIVE = "active"  # Item is currently with person_id under this record
    COMPLETED = "completed"  # Custody ended by return or onward transfer
    REVERTED = "reverted"  # Assignment undone as a mistake


class TransferStockAdjustment(BaseModel):
    """One custody period of an item with a person.

    Created by assign/transfer, closed by return/transfer/revert. Apart from the
    closing fields (status, returned_to_warehouse_id, closed_at) rows never change.
    """

    __tablename__ = "transfer_stock_adjustments"

    item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("items.id"), nullable=False, index=True
    )
    person_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("people.id"), nullable=False, index=True
    )  # Receiving custodian
    from_person_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("people.id"), nullable=True
    )  # Set for person-to-person transfers
    giving_warehouse_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("warehouses.id"), nullable=True
    )  # Warehouse the item originally left
    returned_to_warehouse_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("warehouses.id"), nullable=True
    )
    transfer_stock_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AdjustmentStatus.ACTIVE.value, index=True
    )
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    item: Mapped["Item"] = relationship("Item")
    person: Mapped["Person"] = relationship("Person", foreign_keys=[person_id])
    from_person: Mapped["Person | None"] = relationship("Person", foreign_keys=[from_person_id])

    @property
    def is_active(self) -> bool:
        return self.status == AdjustmentStatus.ACTIVE.value


class TransferWarehouseAdjustment(BaseModel):
    """Move of a warehouse-held item from one warehouse to another. Never changes once written."""

    __tablename__ = "transfer_warehouse_adjustments"

    item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("items.id"), nullable=False, index=True
    )
    giving_warehouse_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("warehouses.id"), nullable=False, index=True
    )
    receiving_warehouse_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("warehouses.id"), nullable=False, index=True
    )
    transfer_stock_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )

    item: Mapped["Item"] = relationship("Item")


# Import at the end to avoid circular imports
from src.modules.items.models import Item
from src.modules.people.models import Person
