from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import BaseModel


class UserRole(StrEnum):
    SUPER_ADMIN = "SuperAdmin"
    ADMIN = "Admin"
    USER = "User"


# Roles allowed to move items and change access grants
MANAGER_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)


class User(BaseModel):
    """
    Back-office operator.

    Not to be confused with Person: a Person holds items and access grants,
    a User is whoever performed an action and shows up in the audit trail.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str | None] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(200))
    role: Mapped[str] = mapped_column(String(50), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in {role.value for role in roles}

    @property
    def can_login(self) -> bool:
        return self.is_active and self.password_hash is not None

    @property
    def is_manager(self) -> bool:
        return self.has_role(*MANAGER_ROLES)
