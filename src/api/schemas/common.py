"""Response envelope shared by every endpoint.

Field names are camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Literal

import msgspec
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from src.api.services.common import Pagination


class CamelStruct(msgspec.Struct, kw_only=True, rename="camel"):
    """Base struct encoding field names in camelCase."""


class PaginationInfo(CamelStruct, kw_only=True):
    """Page position within a list result."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def from_pagination(cls, pagination: Pagination) -> PaginationInfo:
        return cls(
            page=pagination.page,
            limit=pagination.limit,
            total=pagination.total,
            total_pages=pagination.total_pages,
            has_next=pagination.has_next,
            has_prev=pagination.has_prev,
        )


class ResponseMetadata(CamelStruct, kw_only=True):
    """Metadata attached to every envelope."""

    timestamp: datetime
    pagination: PaginationInfo | msgspec.UnsetType = msgspec.UNSET


class ApiResponse(CamelStruct, kw_only=True):
    """Successful response envelope."""

    success: bool = True
    message: str
    data: Any = None
    metadata: ResponseMetadata


class ErrorResponse(CamelStruct, kw_only=True):
    """Error response envelope.

    ``error`` is the machine-readable code, ``message`` the human one.
    """

    success: bool = False
    error: str
    message: str
    details: dict[str, Any] | msgspec.UnsetType = msgspec.UNSET
    metadata: ResponseMetadata


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Service health status")
    database_connected: bool = Field(..., description="Database connection status")
    version: str = Field(default="0.1.0", description="API version")


def now_metadata(pagination: PaginationInfo | None = None) -> ResponseMetadata:
    return ResponseMetadata(
        timestamp=datetime.now(timezone.utc),
        pagination=pagination if pagination is not None else msgspec.UNSET,
    )


def ok(data: Any = None, message: str = "OK", pagination: PaginationInfo | None = None) -> ApiResponse:
    """Build a success envelope."""
    return ApiResponse(message=message, data=data, metadata=now_metadata(pagination))


def error_body(
    error: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> ErrorResponse:
    """Build an error envelope."""
    return ErrorResponse(
        error=error,
        message=message,
        details=details if details is not None else msgspec.UNSET,
        metadata=now_metadata(),
    )
