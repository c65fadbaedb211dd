from datetime import datetime
from typing import Any

from src.shared.schemas import BaseSchema


class AuditLogResponse(BaseSchema):
    id: int
    created_at: datetime
    action: str
    entity_type: str
    entity_id: int
    entity_identifier: str | None
    user_id: int | None
    user_full_name: str | None = None
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    comment: str | None
