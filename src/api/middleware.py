"""Request middleware: correlation ids, request logging and rate limits."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from litestar.datastructures import Headers, MutableScopeHeaders
from litestar.enums import ScopeType
from litestar.middleware import AbstractMiddleware, DefineMiddleware
from litestar.middleware.logging import LoggingMiddlewareConfig
from litestar.middleware.rate_limit import RateLimitConfig

if TYPE_CHECKING:
    from litestar.types import Message, Receive, Scope, Send

    from src.core.config import Settings

REQUEST_ID_HEADER = "x-request-id"
SKIP_RATE_LIMIT = "skip_rate_limit"


class RequestIdMiddleware(AbstractMiddleware):
    """Tag every request with a correlation id.

    An incoming ``X-Request-ID`` is kept, otherwise a new one is made.
    The id is stored as ``request_id`` in connection state and echoed in
    the response headers.
    """

    scopes = {ScopeType.HTTP}

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request_id = Headers.from_scope(scope).get(REQUEST_ID_HEADER) or uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableScopeHeaders.from_message(message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        await self.app(scope, receive, send_with_request_id)


def request_logging_config() -> LoggingMiddlewareConfig:
    """Log method, path and status of every request. Bodies are never logged."""
    return LoggingMiddlewareConfig(
        logger_name="src.api.requests",
        request_log_fields=("method", "path", "query"),
        response_log_fields=("status_code",),
    )


def general_rate_limit(settings: Settings) -> RateLimitConfig:
    """Per-client request budget for the whole API."""
    return RateLimitConfig(
        rate_limit=("minute", settings.rate_limit_per_minute),
        exclude_opt_key=SKIP_RATE_LIMIT,
        store="rate_limit",
    )


def auth_rate_limit(settings: Settings) -> RateLimitConfig:
    """Tighter per-client budget for the credential endpoints."""
    return RateLimitConfig(
        rate_limit=("minute", settings.auth_rate_limit_per_minute),
        store="auth_rate_limit",
    )


def build_middleware(settings: Settings) -> list[DefineMiddleware | type[AbstractMiddleware]]:
    """Application-wide middleware, outermost first."""
    middleware: list[DefineMiddleware | type[AbstractMiddleware]] = [
        RequestIdMiddleware,
        request_logging_config().middleware,
    ]
    if settings.rate_limit_enabled:
        middleware.append(general_rate_limit(settings).middleware)
    return middleware
