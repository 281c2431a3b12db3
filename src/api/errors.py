"""Exception handlers turning errors into the JSON error envelope."""

from __future__ import annotations

import logging
from typing import Any

from litestar import Request, Response
from litestar.exceptions import HTTPException, ValidationException
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from src.api.schemas.common import ErrorResponse, error_body
from src.core.config import Settings
from src.core.exceptions import AppError, ErrorKind

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.ALREADY_EXISTS: HTTP_409_CONFLICT,
    ErrorKind.INVALID_CREDENTIALS: HTTP_401_UNAUTHORIZED,
    ErrorKind.TOKEN_EXPIRED: HTTP_401_UNAUTHORIZED,
    ErrorKind.TOKEN_INVALID: HTTP_401_UNAUTHORIZED,
    ErrorKind.AUTH_REQUIRED: HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: HTTP_400_BAD_REQUEST,
    ErrorKind.INTERNAL: HTTP_500_INTERNAL_SERVER_ERROR,
}

_HTTP_CODES: dict[int, str] = {
    HTTP_400_BAD_REQUEST: "VALIDATION_ERROR",
    HTTP_401_UNAUTHORIZED: "AUTH_REQUIRED",
    HTTP_403_FORBIDDEN: "AUTH_FORBIDDEN",
    HTTP_404_NOT_FOUND: "NOT_FOUND",
    HTTP_429_TOO_MANY_REQUESTS: "RATE_LIMITED",
}


def status_for(kind: ErrorKind) -> int:
    """HTTP status for an error kind."""
    return STATUS_BY_KIND[kind]


def _expose_details(request: Request) -> bool:
    settings: Settings | None = request.app.state.get("settings")
    return settings.expose_error_details if settings is not None else False


def app_error_handler(request: Request, exc: AppError) -> Response[ErrorResponse]:
    """Render an ``AppError`` with the status its kind maps to."""
    status_code = status_for(exc.kind)
    message = exc.message

    if exc.kind is ErrorKind.INTERNAL:
        logger.error(f"Internal error on {request.method} {request.url.path}: {exc.message}")
        if not _expose_details(request):
            message = "Internal server error"
    elif status_code in (HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN):
        logger.info(f"{exc.code} on {request.method} {request.url.path}")

    return Response(
        content=error_body(exc.code, message, exc.details),
        status_code=status_code,
    )


def http_exception_handler(request: Request, exc: HTTPException) -> Response[ErrorResponse]:
    """Render framework exceptions (body validation, routing) in the same envelope."""
    details: dict[str, Any] | None = None
    if isinstance(exc, ValidationException) and exc.extra:
        details = {"errors": exc.extra}

    if exc.status_code == HTTP_429_TOO_MANY_REQUESTS:
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Rate limit exceeded for {client} on {request.method} {request.url.path}")

    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return Response(
        content=error_body(code, exc.detail, details),
        status_code=exc.status_code,
        headers=exc.headers,
    )


def internal_error_handler(request: Request, exc: Exception) -> Response[ErrorResponse]:
    """Render any unexpected exception as a 500."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    message = str(exc) if _expose_details(request) else "Internal server error"
    return Response(
        content=error_body("INTERNAL_ERROR", message),
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
    )


exception_handlers = {
    AppError: app_error_handler,
    HTTPException: http_exception_handler,
    Exception: internal_error_handler,
}
