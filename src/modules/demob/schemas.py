"""Schemas for Demobilization module."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field


class DemobRequest(BaseModel):
    """Offboard a person: return the listed items and revoke the listed grants."""

    person_id: int
    item_ids: list[int] = Field(default_factory=list)
    access_ids: list[int] = Field(default_factory=list)
    performed_by_email: EmailStr | None = None


class DemobDocumentUpdate(BaseModel):
    signed_document_url: str | None = Field(None, max_length=500)
    is_completed: bool | None = None


class DemobDocumentResponse(BaseModel):
    id: int
    person_id: int
    person_name: str | None = None
    performed_by: str
    performed_by_email: str | None
    items_returned: list[dict[str, Any]]
    accesses_revoked: list[dict[str, Any]]
    signed_document_url: str | None
    is_completed: bool
    created_at: datetime
    updated_at: datetime
