from src.core.audit.models import AuditLog
from src.core.audit.service import AuditAction, AuditFilters, AuditService

__all__ = ["AuditAction", "AuditFilters", "AuditLog", "AuditService"]
