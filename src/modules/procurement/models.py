"""Procurement models (suppliers and purchases)."""

from enum import StrEnum

from sqlalchemy import BigInteger, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel


class PurchaseStatus(StrEnum):
    """Purchase status enumeration.

    Intended flow is PENDING -> APPROVED/REJECTED -> RECEIVED, or CANCELLED.
    Transitions are not enforced.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class Supplier(BaseModel):
    """Vendor the items are bought from."""

    __tablename__ = "suppliers"

    title: Mapped[str] = mapped_column(String(300), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_person: Mapped[str | None] = mapped_column(String(200), nullable=True)
    supplier_code: Mapped[str | None] = mapped_column(String(50), nullable=True, unique=True)
    tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class Purchase(BaseModel):
    """Procurement request for products from a supplier."""

    __tablename__ = "purchases"

    products: Mapped[str] = mapped_column(Text, nullable=False)  # Free-text product list
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    supplier_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("suppliers.id"), nullable=True, index=True
    )
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PurchaseStatus.PENDING.value, index=True
    )

    # Relationships
    supplier: Mapped["Supplier | None"] = relationship("Supplier")
