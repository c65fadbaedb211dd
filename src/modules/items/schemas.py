"""Schemas for Items module."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.modules.items.models import LocationType


# --- Reference data ---


class CategoryCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class CategoryUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None


class CategoryResponse(BaseModel):
    id: int
    title: str
    description: str | None

    model_config = {"from_attributes": True}


class BrandCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)


class BrandUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=100)


class BrandResponse(BaseModel):
    id: int
    title: str

    model_config = {"from_attributes": True}


class UnitCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    abbreviation: str = Field(..., min_length=1, max_length=20)


class UnitUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=100)
    abbreviation: str | None = Field(None, min_length=1, max_length=20)


class UnitResponse(BaseModel):
    id: int
    title: str
    abbreviation: str

    model_config = {"from_attributes": True}


# --- Item Schemas ---


class ItemCreate(BaseModel):
    """New items always start in the given warehouse."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    category_id: int
    brand_id: int | None = None
    unit_id: int | None = None
    supplier_id: int | None = None
    warehouse_id: int
    quantity: int = Field(1, ge=1)
    serial_number: str | None = Field(None, max_length=100)
    barcode: str | None = Field(None, max_length=100)
    asset_tag: str | None = Field(None, max_length=100)
    model: str | None = Field(None, max_length=100)
    year: int | None = Field(None, ge=1900, le=2100)
    buying_price: Decimal | None = Field(None, ge=0, decimal_places=2)
    notes: str | None = None


class ItemUpdate(BaseModel):
    """Descriptive fields only. Custody changes go through the custody endpoints."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    category_id: int | None = None
    brand_id: int | None = None
    unit_id: int | None = None
    supplier_id: int | None = None
    serial_number: str | None = Field(None, max_length=100)
    barcode: str | None = Field(None, max_length=100)
    asset_tag: str | None = Field(None, max_length=100)
    model: str | None = Field(None, max_length=100)
    year: int | None = Field(None, ge=1900, le=2100)
    buying_price: Decimal | None = Field(None, ge=0, decimal_places=2)
    notes: str | None = None


class ItemResponse(BaseModel):
    id: int
    title: str
    description: str | None
    category_id: int
    category_title: str | None = None
    brand_id: int | None
    brand_title: str | None = None
    unit_id: int | None
    supplier_id: int | None
    warehouse_id: int | None
    warehouse_title: str | None = None
    assigned_to_person_id: int | None
    assigned_to_person_name: str | None = None
    current_location_type: LocationType
    quantity: int
    serial_number: str | None
    barcode: str | None
    asset_tag: str | None
    model: str | None
    year: int | None
    buying_price: Decimal | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
