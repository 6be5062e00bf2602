"""
Response envelopes.

Success bodies carry ``success`` / ``message`` / ``data`` (plus ``pagination``
for lists); errors carry ``success=False`` and an ``error`` object. Every
envelope ends with ``meta``, whose ``request_id`` matches the
``X-Request-ID`` header of the same response.
"""
from datetime import UTC, datetime
from typing import Any, Generic, Literal, TypeVar

import structlog
from pydantic import BaseModel, Field

T = TypeVar("T")

API_VERSION = "1.0.0"

ComponentStatus = Literal["healthy", "degraded", "unhealthy"]


def _current_request_id() -> str | None:
    # Bound by RequestIDMiddleware for the lifetime of the request
    return structlog.contextvars.get_contextvars().get("request_id")


class ResponseMeta(BaseModel):
    request_id: str | None = Field(default_factory=_current_request_id)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: str = API_VERSION


class GenericResponse(BaseModel, Generic[T]):
    """
    Successful response.

    Example:
        ```python
        @router.get("/admin/dashboard", response_model=GenericResponse[DashboardStats])
        async def dashboard(...) -> GenericResponse[DashboardStats]:
            return GenericResponse(message="Dashboard statistics", data=stats)
        ```
    """

    success: bool = True
    message: str
    data: T
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class PaginationMeta(BaseModel):
    total: int
    page: int = Field(ge=1)
    page_size: int = Field(ge=1, le=100)
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def from_total(cls, total: int, page: int, page_size: int) -> "PaginationMeta":
        # An empty listing still reports one (empty) page
        total_pages = max(1, -(-total // page_size))
        return cls(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: list[T]
    pagination: PaginationMeta
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class ErrorDetail(BaseModel):
    code: str = Field(description="Machine-readable error code, e.g. INVALID_STATUS_TRANSITION")
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail
    meta: ResponseMeta = Field(default_factory=ResponseMeta)

    @classmethod
    def build(cls, code: str, message: str, details: dict[str, Any] | None = None) -> "ErrorResponse":
        return cls(error=ErrorDetail(code=code, message=message, details=details))


class HealthCheck(BaseModel):
    status: ComponentStatus
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    status: ComponentStatus
    service: str
    version: str
    environment: str
    checks: dict[str, HealthCheck] = Field(default_factory=dict)
