"""Schemas for Access module."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.modules.access.models import AccessStatus


# --- Reference data ---


class AccessCategoryCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class AccessCategoryUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None


class AccessItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    category_id: int


class AccessItemUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    category_id: int | None = None


class AccessItemResponse(BaseModel):
    id: int
    name: str
    description: str | None
    category_id: int

    model_config = {"from_attributes": True}


class AccessCategoryResponse(BaseModel):
    id: int
    title: str
    description: str | None
    access_items: list[AccessItemResponse] = []

    model_config = {"from_attributes": True}


# --- Grants ---


class GrantRequest(BaseModel):
    person_id: int
    access_item_id: int
    notes: str | None = None


class RevokeRequest(BaseModel):
    notes: str | None = None


class GrantResponse(BaseModel):
    id: int
    person_id: int
    person_name: str | None = None
    access_item_id: int
    access_item_name: str | None = None
    status: AccessStatus
    granted_date: datetime
    revoked_date: datetime | None
    granted_by: str | None
    revoked_by: str | None
    notes: str | None
