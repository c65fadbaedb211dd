"""Demobilization (offboarding) document model."""

from sqlalchemy import BigInteger, Boolean, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel


class DemobDocument(BaseModel):
    """Record of an employee's offboarding: returned items and revoked accesses."""

    __tablename__ = "demob_documents"

    person_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("people.id"), nullable=False, index=True
    )
    performed_by: Mapped[str] = mapped_column(String(200), nullable=False)
    performed_by_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Snapshots at the time of demobilization, list of {id, title/name, ...}
    items_returned: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    accesses_revoked: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    signed_document_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    person: Mapped["Person"] = relationship("Person")


# Import at the end to avoid circular imports
from src.modules.people.models import Person
