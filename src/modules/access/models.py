"""ICT access models: categories, access items and grants to people."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel


class AccessStatus(StrEnum):
    ACTIVE = "active"
    REVOKED = "revoked"  # Terminal: re-granting creates a new row


class AccessCategory(BaseModel):
    """Group of access items (e.g. "Network", "Applications")."""

    __tablename__ = "access_categories"

    title: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    access_items: Mapped[list["AccessItem"]] = relationship(
        "AccessItem", back_populates="category", order_by="AccessItem.name"
    )


class AccessItem(BaseModel):
    """Grantable system access (VPN, email, ERP role...)."""

    __tablename__ = "access_items"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("access_categories.id"), nullable=False, index=True
    )

    # Relationships
    category: Mapped["AccessCategory"] = relationship(
        "AccessCategory", back_populates="access_items"
    )


class EmployeeAccess(BaseModel):
    """Grant of an access item to a person. Rows are never deleted."""

    __tablename__ = "employee_accesses"

    person_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("people.id"), nullable=False, index=True
    )
    access_item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("access_items.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccessStatus.ACTIVE.value, index=True
    )
    granted_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    revoked_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    granted_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    revoked_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    access_item: Mapped["AccessItem"] = relationship("AccessItem")
    person: Mapped["Person"] = relationship("Person")

    @property
    def is_active(self) -> bool:
        return self.status == AccessStatus.ACTIVE.value


# Import at the end to avoid circular imports
from src.modules.people.models import Person
