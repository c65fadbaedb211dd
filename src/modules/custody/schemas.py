"""Schemas for Custody module."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.modules.custody.models import AdjustmentStatus
from src.modules.items.models import LocationType


class AssignRequest(BaseModel):
    """Hand an item from a warehouse to a person."""

    item_id: int
    person_id: int
    warehouse_id: int | None = None  # Defaults to the item's home warehouse
    reference_number: str | None = Field(None, max_length=100)
    notes: str | None = None


class ReturnRequest(BaseModel):
    item_id: int
    warehouse_id: int | None = None
    notes: str | None = None


class TransferRequest(BaseModel):
    item_id: int
    from_person_id: int
    to_person_id: int
    notes: str | None = None


class RelocateRequest(BaseModel):
    """Move a warehouse-held item to another warehouse."""

    item_id: int
    to_warehouse_id: int
    reference_number: str | None = Field(None, max_length=100)
    notes: str | None = None


class AdjustmentResponse(BaseModel):
    id: int
    item_id: int
    item_title: str | None = None
    person_id: int
    person_name: str | None = None
    from_person_id: int | None
    giving_warehouse_id: int | None
    returned_to_warehouse_id: int | None
    transfer_stock_qty: int
    status: AdjustmentStatus
    reference_number: str | None
    notes: str | None
    created_by_id: int | None
    closed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class RelocationResponse(BaseModel):
    id: int
    item_id: int
    giving_warehouse_id: int
    receiving_warehouse_id: int
    transfer_stock_qty: int
    reference_number: str | None
    notes: str | None
    created_by_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CustodyStateResponse(BaseModel):
    """Item custody after a transition."""

    item_id: int
    current_location_type: LocationType
    warehouse_id: int | None
    assigned_to_person_id: int | None
    adjustment: AdjustmentResponse | None = None


class ReconcileResult(BaseModel):
    """Outcome of reconciling one item; unknown ids are reported with found=False."""

    item_id: int
    found: bool
    repaired: bool
    changes: dict[str, dict[str, Any]] = {}


class ItemFailure(BaseModel):
    item_id: int
    error: str
    message: str


class ReconcileReport(BaseModel):
    total: int = 0
    repaired: int = 0
    already_correct: int = 0
    failed: int = 0
    failures: list[ItemFailure] = []


class ReleaseReport(BaseModel):
    total: int = 0
    released: int = 0
    failed: int = 0
    released_item_ids: list[int] = []
    failures: list[ItemFailure] = []
