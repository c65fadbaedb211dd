"""Warehouse model."""

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import BaseModel


class Warehouse(BaseModel):
    """Storage location. stock_qty counts units physically on its shelves."""

    __tablename__ = "warehouses"
    __table_args__ = (
        CheckConstraint("stock_qty >= 0", name="ck_warehouses_stock_qty_non_negative"),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    location: Mapped[str | None] = mapped_column(String(300), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    warehouse_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    stock_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
