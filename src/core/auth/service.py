import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.auth.jwt import create_access_token, create_refresh_token, decode_token
from src.core.auth.models import User, UserRole
from src.core.auth.password import hash_password, verify_password
from src.core.auth.schemas import OperatorUpdate
from src.core.exceptions import (
    AuthenticationError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Operator accounts: login, token refresh and account management."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)

    async def get_user_by_email(self, email: str) -> User | None:
        return await self.session.scalar(select(User).where(User.email == email.lower()))

    async def get_user_by_id(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def get_active_user(self, user_id: int) -> User:
        """Resolve a token subject; missing and deactivated accounts are both 401."""
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise AuthenticationError("User not found")
        if not user.is_active:
            raise AuthenticationError("User account is deactivated")
        return user

    async def create_user(
        self,
        email: str,
        password: str,
        full_name: str,
        role: UserRole,
        created_by_id: int | None = None,
    ) -> User:
        """Add an operator account. Flushes; the caller commits."""
        email = email.lower()
        if await self.get_user_by_email(email):
            raise DuplicateError("User", "email", email)

        user = User(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            role=UserRole(role).value,
            is_active=True,
        )
        self.session.add(user)
        await self.session.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="User",
            entity_id=user.id,
            user_id=created_by_id,
            entity_identifier=user.email,
            new_values={"email": user.email, "role": user.role, "full_name": user.full_name},
        )
        logger.info("Operator %s created with role %s", user.email, user.role)
        return user

    async def list_users(
        self,
        role: UserRole | None = None,
        is_active: bool | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[User], int]:
        clauses = []
        if role is not None:
            clauses.append(User.role == role.value)
        if is_active is not None:
            clauses.append(User.is_active == is_active)

        total = await self.session.scalar(select(func.count(User.id)).where(*clauses))
        result = await self.session.execute(
            select(User)
            .where(*clauses)
            .order_by(User.full_name, User.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def update_user(self, user_id: int, data: OperatorUpdate, updated_by: User) -> User:
        """
        Change name, role or active flag.

        An operator cannot demote or deactivate themselves, so there is
        always at least the caller left with SuperAdmin rights.
        """
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        changes = data.model_dump(exclude_unset=True)
        if user.id == updated_by.id:
            if changes.get("is_active") is False:
                raise ValidationError("You cannot deactivate your own account", field="is_active")
            if "role" in changes and changes["role"] != UserRole(user.role):
                raise ValidationError("You cannot change your own role", field="role")

        old_values, new_values = {}, {}
        for field, value in changes.items():
            if value is None:
                continue
            stored = value.value if isinstance(value, UserRole) else value
            if getattr(user, field) != stored:
                old_values[field] = getattr(user, field)
                new_values[field] = stored
                setattr(user, field, stored)

        if new_values:
            await self.session.flush()
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="User",
                entity_id=user.id,
                user_id=updated_by.id,
                entity_identifier=user.email,
                old_values=old_values,
                new_values=new_values,
            )
        return user

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect", field="current_password")
        user.password_hash = hash_password(new_password)
        await self.session.flush()
        await self.audit.log(
            action=AuditAction.UPDATE,
            entity_type="User",
            entity_id=user.id,
            user_id=user.id,
            entity_identifier=user.email,
            comment="Password changed",
        )

    async def authenticate(
        self, email: str, password: str, ip_address: str | None = None
    ) -> tuple[User, str, str]:
        """
        Verify credentials and issue (user, access_token, refresh_token).

        Unknown email, wrong password and password-less accounts share one
        message; a deactivated account is reported as such.
        """
        user = await self.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login for %s", email)
            raise AuthenticationError("Invalid email or password")
        if not user.can_login:
            raise AuthenticationError("User account is deactivated")

        user.last_login_at = datetime.now(timezone.utc)
        await self.session.flush()
        await self.audit.log(
            action=AuditAction.LOGIN,
            entity_type="User",
            entity_id=user.id,
            user_id=user.id,
            entity_identifier=user.email,
            ip_address=ip_address,
        )
        return user, create_access_token(user.id, user.role), create_refresh_token(user.id)

    async def refresh_tokens(self, refresh_token: str) -> tuple[str, str]:
        payload = decode_token(refresh_token, token_type="refresh")
        user = await self.get_active_user(int(payload["sub"]))
        return create_access_token(user.id, user.role), create_refresh_token(user.id)
