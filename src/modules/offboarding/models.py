"""Offboarding checklist tasks."""

from datetime import date, datetime
from enum import StrEnum

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel


class TaskType(StrEnum):
    ITEM_COLLECTION = "item_collection"
    ACCESS_REVOCATION = "access_revocation"
    GENERAL = "general"


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    ASSET_COLLECTED = "asset_collected"  # Item collection only; item is back in a warehouse
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


OPEN_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.ASSET_COLLECTED)

# Allowed status moves per task type
TRANSITIONS: dict[TaskType, dict[TaskStatus, set[TaskStatus]]] = {
    TaskType.ITEM_COLLECTION: {
        TaskStatus.PENDING: {TaskStatus.ASSET_COLLECTED, TaskStatus.CANCELLED},
        TaskStatus.ASSET_COLLECTED: {TaskStatus.COMPLETED},
    },
    TaskType.ACCESS_REVOCATION: {
        TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED},
        TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    },
    TaskType.GENERAL: {
        TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED},
        TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    },
}


class OffboardingTask(BaseModel):
    """One step of a leaver's checklist: collect an item, revoke a grant, or anything else."""

    __tablename__ = "offboarding_tasks"

    person_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("people.id"), nullable=False, index=True
    )
    task_type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default=TaskPriority.MEDIUM.value
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TaskStatus.PENDING.value, index=True
    )
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    assigned_to: Mapped[str | None] = mapped_column(String(200), nullable=True)
    item_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("items.id"), nullable=True, index=True
    )
    access_grant_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("employee_accesses.id"), nullable=True, index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )

    # Relationships
    person: Mapped["Person"] = relationship("Person")
    item: Mapped["Item | None"] = relationship("Item")
    access_grant: Mapped["EmployeeAccess | None"] = relationship("EmployeeAccess")

    @property
    def is_open(self) -> bool:
        return self.status in {s.value for s in OPEN_STATUSES}


# Import at the end to avoid circular imports
from src.modules.access.models import EmployeeAccess
from src.modules.items.models import Item
from src.modules.people.models import Person
