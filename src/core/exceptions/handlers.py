import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.core.config import settings
from src.core.exceptions.base import AppException
from src.shared.schemas import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int,
    error: str,
    message: str,
    errors: list[ErrorDetail] | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        errors=errors if errors is not None else [ErrorDetail(message=message)],
        details=details or {},
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Domain errors keep their class name and structured details."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s rejected with %s: %s",
            request.method,
            request.url.path,
            exc.error,
            exc.message,
        )

    return _error_response(
        exc.status_code,
        exc.error,
        exc.message,
        errors=[ErrorDetail(field=exc.details.get("field"), message=exc.message)],
        details=exc.details,
    )


def _field_path(loc: tuple | list) -> str | None:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or None


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request bodies and query params that fail pydantic validation."""
    errors = [
        ErrorDetail(field=_field_path(err.get("loc", ())), message=err.get("msg", "Invalid value"))
        for err in exc.errors()
    ]
    return _error_response(422, "ValidationError", "Validation error", errors=errors)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = str(exc.detail) if exc.detail else "HTTP error"
    return _error_response(exc.status_code, "HTTPException", message)


def describe_db_error(exc: SQLAlchemyError) -> tuple[int, str]:
    """
    Map a storage failure to (status, message) safe to show a client.

    Constraint violations surface as 409; anything else is a 500 whose raw
    driver text is only exposed in debug mode.
    """
    raw = str(getattr(exc, "orig", exc))
    if isinstance(exc, IntegrityError):
        if "foreign key" in raw.lower():
            return 409, "Referenced record does not exist or is still in use"
        return 409, "Record conflicts with existing data"
    if "column" in raw.lower() and "does not exist" in raw.lower():
        return 500, "Database schema is out of date, run the latest migrations"
    return 500, raw if settings.debug else "Database error"


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    status_code, message = describe_db_error(exc)
    return _error_response(status_code, "PersistenceError", message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
