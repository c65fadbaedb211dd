"""Schemas for Offboarding module."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from src.modules.offboarding.models import TaskPriority, TaskStatus, TaskType


class TaskCreate(BaseModel):
    person_id: int
    task_type: TaskType = TaskType.GENERAL
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None
    assigned_to: str | None = Field(None, max_length=200)
    item_id: int | None = None  # Required for item_collection
    access_grant_id: int | None = None  # Required for access_revocation


class TaskGenerateRequest(BaseModel):
    due_date: date | None = None
    assigned_to: str | None = Field(None, max_length=200)


class TaskStatusUpdate(BaseModel):
    status: TaskStatus
    notes: str | None = None
    # Item collection: where the item goes; defaults to the warehouse it was issued from
    warehouse_id: int | None = None


class TaskResponse(BaseModel):
    id: int
    person_id: int
    task_type: TaskType
    title: str
    description: str | None
    priority: TaskPriority
    status: TaskStatus
    due_date: date | None
    assigned_to: str | None
    item_id: int | None
    access_grant_id: int | None
    notes: str | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class GenerateResultResponse(BaseModel):
    created: list[TaskResponse]
    skipped: int  # Items or grants that already had an open task
