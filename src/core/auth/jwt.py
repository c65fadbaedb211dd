import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from src.core.config import settings
from src.core.exceptions import AuthenticationError

ACCESS = "access"
REFRESH = "refresh"


def _issue(user_id: int, token_type: str, ttl: timedelta, **extra: Any) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "iat": issued_at,
        "exp": issued_at + ttl,
        **extra,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, role: str) -> str:
    return _issue(
        user_id, ACCESS, timedelta(minutes=settings.access_token_expire_minutes), role=role
    )


def create_refresh_token(user_id: int) -> str:
    return _issue(user_id, REFRESH, timedelta(days=settings.refresh_token_expire_days))


def decode_token(token: str, token_type: str = ACCESS) -> dict[str, Any]:
    """Claims of a valid, unexpired token of the expected type; AuthenticationError otherwise."""
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError:
        raise AuthenticationError("Invalid token")

    if claims.get("type") != token_type:
        raise AuthenticationError(f"Expected a {token_type} token")
    if not str(claims.get("sub", "")).isdigit():
        raise AuthenticationError("Invalid token subject")
    return claims
