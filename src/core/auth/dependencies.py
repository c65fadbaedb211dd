from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.jwt import decode_token
from src.core.auth.models import MANAGER_ROLES, User, UserRole
from src.core.auth.service import AuthService
from src.core.database import get_db
from src.core.exceptions import AuthenticationError, AuthorizationError


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise AuthenticationError("Authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")
    return token.strip()


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    payload = decode_token(_bearer_token(authorization), token_type="access")
    return await AuthService(db).get_active_user(int(payload["sub"]))


def require_roles(*roles: UserRole):
    """Route dependency: 401 without a valid token, 403 for any other role."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if not user.has_role(*roles):
            raise AuthorizationError(
                f"Requires one of: {', '.join(role.value for role in roles)}"
            )
        return user

    return checker


CurrentUser = Annotated[User, Depends(get_current_user)]
AnyUser = Annotated[User, Depends(require_roles(*UserRole))]
AdminUser = Annotated[User, Depends(require_roles(*MANAGER_ROLES))]
SuperAdminUser = Annotated[User, Depends(require_roles(UserRole.SUPER_ADMIN))]
