"""Schemas for Procurement module (suppliers and purchases)."""

from datetime import datetime

from pydantic import EmailStr, Field

from src.modules.procurement.models import PurchaseStatus
from src.shared.schemas.base import BaseSchema


# --- Supplier Schemas ---


class SupplierCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=300)
    phone: str | None = Field(None, max_length=50)
    email: EmailStr | None = None
    address: str | None = None
    contact_person: str | None = Field(None, max_length=200)
    supplier_code: str | None = Field(None, max_length=50)
    tax_id: str | None = Field(None, max_length=50)
    payment_terms: str | None = Field(None, max_length=200)
    notes: str | None = None


class SupplierUpdate(BaseSchema):
    title: str | None = Field(None, min_length=1, max_length=300)
    phone: str | None = Field(None, max_length=50)
    email: EmailStr | None = None
    address: str | None = None
    contact_person: str | None = Field(None, max_length=200)
    supplier_code: str | None = Field(None, max_length=50)
    tax_id: str | None = Field(None, max_length=50)
    payment_terms: str | None = Field(None, max_length=200)
    notes: str | None = None


class SupplierResponse(BaseSchema):
    id: int
    title: str
    phone: str | None
    email: str | None
    address: str | None
    contact_person: str | None
    supplier_code: str | None
    tax_id: str | None
    payment_terms: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


# --- Purchase Schemas ---


class PurchaseCreate(BaseSchema):
    """Schema for creating a purchase. New purchases start as PENDING."""

    products: str = Field(..., min_length=1)
    quantity: int = Field(1, gt=0)
    supplier_id: int | None = None
    reference_number: str | None = Field(None, max_length=100)
    notes: str | None = None


class PurchaseUpdate(BaseSchema):
    """Any status may be set; the approval flow lives with the caller."""

    products: str | None = Field(None, min_length=1)
    quantity: int | None = Field(None, gt=0)
    supplier_id: int | None = None
    reference_number: str | None = Field(None, max_length=100)
    notes: str | None = None
    status: PurchaseStatus | None = None


class PurchaseResponse(BaseSchema):
    id: int
    products: str
    quantity: int
    supplier_id: int | None
    supplier_title: str | None = None
    reference_number: str | None
    notes: str | None
    status: PurchaseStatus
    created_at: datetime
    updated_at: datetime
