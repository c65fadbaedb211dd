from src.core.exceptions.base import (
    AppException,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InsufficientStockError,
    InvariantViolationError,
    PersistenceError,
    DuplicateError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "InsufficientStockError",
    "InvariantViolationError",
    "PersistenceError",
    "DuplicateError",
]
