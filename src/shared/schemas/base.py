from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Shared config: read from ORM objects, accept field names and aliases."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ErrorDetail(BaseSchema):
    field: str | None = None
    message: str


class ApiResponse(BaseSchema, Generic[T]):
    """Envelope for every successful response."""

    success: bool = True
    data: T
    message: str | None = None


class ErrorResponse(BaseSchema):
    """
    Envelope for every failed response.

    `error` is the exception class name (e.g. InsufficientStockError) so
    clients can branch on it; `details` carries the structured context the
    exception was raised with (requested/available stock, item id, ...).
    """

    success: bool = False
    data: None = None
    error: str
    message: str
    errors: list[ErrorDetail] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)


class PaginatedResponse(BaseSchema, Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int

    @computed_field
    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)

    @classmethod
    def create(cls, items: list[T], total: int, page: int, limit: int) -> "PaginatedResponse[T]":
        return cls(items=items, total=total, page=page, limit=limit)
