from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def error(self) -> str:
        """Stable error code for API payloads."""
        return type(self).__name__


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id={identifier} not found"
        super().__init__(
            message=message,
            status_code=404,
            details={"resource": resource, "id": identifier},
        )


class ValidationError(AppException):
    """Validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, status_code=401)


class AuthorizationError(AppException):
    """Not authorized to perform action."""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message=message, status_code=403)


class ConflictError(AppException):
    """Operation conflicts with the current state of a resource."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=409, details=details)


class InsufficientStockError(ConflictError):
    """Not enough stock for operation."""

    def __init__(self, holder: str, holder_id: int, requested: int, available: int):
        message = (
            f"Insufficient stock at {holder} {holder_id}: "
            f"requested {requested}, available {available}"
        )
        super().__init__(
            message=message,
            details={
                "holder": holder,
                "holder_id": holder_id,
                "requested": requested,
                "available": available,
            },
        )


class InvariantViolationError(AppException):
    """Operation would leave an item with inconsistent custody."""

    def __init__(self, message: str, item_id: int | None = None):
        details = {"item_id": item_id} if item_id is not None else {}
        super().__init__(message=message, status_code=422, details=details)


class PersistenceError(AppException):
    """Storage write failed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=500, details=details)


class DuplicateError(AppException):
    """Duplicate resource."""

    def __init__(self, resource: str, field: str, value: Any):
        message = f"{resource} with {field}={value} already exists"
        super().__init__(message=message, status_code=409, details={"field": field, "value": value})
