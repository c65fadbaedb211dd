from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from src.core.auth.models import UserRole
from src.core.config import settings
from src.shared.schemas import BaseSchema


def _check_password(value: str) -> str:
    if len(value) < settings.min_password_length:
        raise ValueError(f"Password must be at least {settings.min_password_length} characters")
    return value


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str


class RefreshRequest(BaseSchema):
    refresh_token: str


class TokenPair(BaseSchema):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class OperatorResponse(BaseSchema):
    id: int
    email: str
    full_name: str
    role: UserRole
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime


class LoginResponse(TokenPair):
    user: OperatorResponse


class OperatorCreate(BaseSchema):
    email: EmailStr
    full_name: str = Field(min_length=2, max_length=200)
    role: UserRole = UserRole.USER
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class OperatorUpdate(BaseSchema):
    """Partial update; omitted fields stay as they are."""

    full_name: str | None = Field(None, min_length=2, max_length=200)
    role: UserRole | None = None
    is_active: bool | None = None


class PasswordChange(BaseSchema):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_password(v)
