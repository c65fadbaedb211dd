"""Schemas for Warehouses module."""

from datetime import datetime

from pydantic import BaseModel, Field


class WarehouseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    location: str | None = Field(None, max_length=300)
    description: str | None = None
    warehouse_type: str | None = Field(None, max_length=50)
    stock_qty: int = Field(0, ge=0)


class WarehouseUpdate(BaseModel):
    """stock_qty here is a manual stock-count correction."""

    title: str | None = Field(None, min_length=1, max_length=200)
    location: str | None = Field(None, max_length=300)
    description: str | None = None
    warehouse_type: str | None = Field(None, max_length=50)
    stock_qty: int | None = Field(None, ge=0)


class WarehouseResponse(BaseModel):
    id: int
    title: str
    location: str | None
    description: str | None
    warehouse_type: str | None
    stock_qty: int
    item_count: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
