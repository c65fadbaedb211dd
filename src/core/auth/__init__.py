from src.core.auth.jwt import create_access_token, create_refresh_token, decode_token
from src.core.auth.models import MANAGER_ROLES, User, UserRole

__all__ = [
    "MANAGER_ROLES",
    "User",
    "UserRole",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
]
