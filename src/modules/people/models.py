"""Person (employee / custodian) model."""

from datetime import date
from enum import StrEnum

from sqlalchemy import CheckConstraint, Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import BaseModel


class PersonStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"  # Demobilized


class Person(BaseModel):
    """Employee who can hold items and access grants.

    stock_qty counts units currently in the person's custody.
    """

    __tablename__ = "people"
    __table_args__ = (
        CheckConstraint("stock_qty >= 0", name="ck_people_stock_qty_non_negative"),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False, index=True)  # Full name
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    topology: Mapped[str | None] = mapped_column(String(100), nullable=True)
    aow: Mapped[str | None] = mapped_column(String(100), nullable=True)  # Area of work
    contract_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PersonStatus.ACTIVE.value, index=True
    )
    stock_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def is_active(self) -> bool:
        return self.status == PersonStatus.ACTIVE.value
