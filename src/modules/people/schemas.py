"""Schemas for People module."""

from datetime import date, datetime

from pydantic import BaseModel, EmailStr, Field

from src.modules.access.schemas import GrantResponse
from src.modules.custody.schemas import AdjustmentResponse
from src.modules.items.models import LocationType
from src.modules.people.models import PersonStatus


class PersonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    email: EmailStr | None = None
    department: str | None = Field(None, max_length=100)
    topology: str | None = Field(None, max_length=100)
    aow: str | None = Field(None, max_length=100)
    contract_end_date: date | None = None
    status: PersonStatus = PersonStatus.ACTIVE


class PersonUpdate(BaseModel):
    """stock_qty is not writable, it follows custody transitions."""

    title: str | None = Field(None, min_length=1, max_length=200)
    email: EmailStr | None = None
    department: str | None = Field(None, max_length=100)
    topology: str | None = Field(None, max_length=100)
    aow: str | None = Field(None, max_length=100)
    contract_end_date: date | None = None
    status: PersonStatus | None = None


class PersonResponse(BaseModel):
    id: int
    title: str
    email: str | None
    department: str | None
    topology: str | None
    aow: str | None
    contract_end_date: date | None
    status: PersonStatus
    stock_qty: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class HeldItemResponse(BaseModel):
    id: int
    title: str
    serial_number: str | None
    asset_tag: str | None
    quantity: int
    current_location_type: LocationType
    warehouse_id: int | None

    model_config = {"from_attributes": True}


class DemobSummaryResponse(BaseModel):
    id: int
    performed_by: str
    is_completed: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class OpenTaskResponse(BaseModel):
    id: int
    task_type: str
    title: str
    priority: str
    status: str
    due_date: date | None

    model_config = {"from_attributes": True}


class PersonProfileResponse(BaseModel):
    """Person with everything currently in their custody."""

    person: PersonResponse
    items: list[HeldItemResponse]
    active_accesses: list[GrantResponse]
    active_adjustments: list[AdjustmentResponse]
    demob_documents: list[DemobSummaryResponse]
    open_tasks: list[OpenTaskResponse] = []
