from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.models import AuditLog
from src.core.auth.models import User


class AuditAction(StrEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"

    ASSIGN_ITEM = "ASSIGN_ITEM"
    RETURN_ITEM = "RETURN_ITEM"
    TRANSFER_ITEM = "TRANSFER_ITEM"
    REVERT_ASSIGNMENT = "REVERT_ASSIGNMENT"
    RELOCATE_ITEM = "RELOCATE_ITEM"
    RECONCILE_LOCATION = "RECONCILE_LOCATION"
    RELEASE_UNTRACKED = "RELEASE_UNTRACKED"

    GRANT_ACCESS = "GRANT_ACCESS"
    REVOKE_ACCESS = "REVOKE_ACCESS"

    DEMOBILIZE = "DEMOBILIZE"


class AuditFilters(BaseModel):
    entity_type: str | None = None
    entity_id: int | None = None
    action: str | None = None
    user_id: int | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    def clauses(self) -> list:
        clauses = []
        if self.entity_type is not None:
            clauses.append(AuditLog.entity_type == self.entity_type)
        if self.entity_id is not None:
            clauses.append(AuditLog.entity_id == self.entity_id)
        if self.action is not None:
            clauses.append(AuditLog.action == self.action)
        if self.user_id is not None:
            clauses.append(AuditLog.user_id == self.user_id)
        if self.date_from is not None:
            clauses.append(AuditLog.created_at >= self.date_from)
        if self.date_to is not None:
            clauses.append(AuditLog.created_at <= self.date_to)
        return clauses


class AuditService:
    """
    Audit trail writer and reader.

    `log` only adds and flushes: the entry commits or rolls back together
    with the change it describes.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: str | AuditAction,
        entity_type: str,
        entity_id: int,
        user_id: int | None = None,
        entity_identifier: str | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        comment: str | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            action=str(action),
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            entity_identifier=entity_identifier,
            old_values=old_values,
            new_values=new_values,
            comment=comment,
            ip_address=ip_address,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def list_entries(
        self, filters: AuditFilters, page: int = 1, limit: int = 50
    ) -> tuple[list[tuple[AuditLog, str | None]], int]:
        """Newest first, each entry paired with the operator's full name."""
        clauses = filters.clauses()
        total = await self.db.scalar(select(func.count(AuditLog.id)).where(*clauses))

        result = await self.db.execute(
            select(AuditLog, User.full_name)
            .outerjoin(User, AuditLog.user_id == User.id)
            .where(*clauses)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return [(entry, full_name) for entry, full_name in result.all()], total or 0

    async def entity_trail(
        self, entity_type: str, entity_id: int
    ) -> list[tuple[AuditLog, str | None]]:
        """Full history of one record, oldest first."""
        result = await self.db.execute(
            select(AuditLog, User.full_name)
            .outerjoin(User, AuditLog.user_id == User.id)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.id)
        )
        return [(entry, full_name) for entry, full_name in result.all()]
