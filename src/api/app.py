"""Litestar application factory and configuration."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from litestar import Litestar, Router
from litestar.config.cors import CORSConfig
from litestar.datastructures import State
from litestar.logging import LoggingConfig
from litestar.openapi import OpenAPIConfig
from litestar.openapi.spec import Contact, Server

from src.api.dependencies import dependencies, init_services, shutdown_services
from src.api.errors import exception_handlers
from src.api.middleware import REQUEST_ID_HEADER, auth_rate_limit, build_middleware
from src.api.routes import (
    AuthController,
    HealthController,
    HouseAssociationController,
    UserController,
)
from src.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: Litestar) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the database pool and security services on startup and keeps
    them on ``app.state``; releases them on shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting house association API ({settings.environment.value})")

    init_services(app.state, settings)

    try:
        yield
    finally:
        logger.info("Shutting down house association API")
        await shutdown_services(app.state)


def create_app(settings: Settings | None = None) -> Litestar:
    """Create and configure Litestar application.

    Args:
        settings: Application settings. Read from the environment if omitted.

    Returns:
        Configured Litestar application instance.
    """
    settings = settings or get_settings()

    cors_config = CORSConfig(
        allow_origins=[settings.cors_origin],
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        allow_credentials=True,
    )

    logging_config = LoggingConfig(
        root={
            "level": "DEBUG" if settings.debug else "INFO",
            "handlers": ["console"],
        },
        formatters={
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        },
        handlers={
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
            },
        },
        loggers={
            "src": {
                "level": "DEBUG" if settings.debug else "INFO",
                "propagate": True,
            },
            "sqlalchemy.engine": {
                "level": "INFO" if settings.db_echo else "WARNING",
                "propagate": True,
            },
        },
    )

    openapi_config = OpenAPIConfig(
        title="House Association Management API",
        version="0.1.0",
        description="Membership and access control for house associations",
        contact=Contact(name="API Support"),
        servers=[
            Server(
                url=f"http://{settings.api_host}:{settings.api_port}",
                description="Local development server",
            ),
        ],
        path="/docs",
    )

    auth_router = Router(
        path=settings.api_prefix,
        route_handlers=[AuthController],
        middleware=[auth_rate_limit(settings).middleware] if settings.rate_limit_enabled else [],
    )
    api_router = Router(
        path=settings.api_prefix,
        route_handlers=[
            HealthController,
            UserController,
            HouseAssociationController,
        ],
    )

    return Litestar(
        route_handlers=[auth_router, api_router],
        dependencies=dependencies,
        middleware=build_middleware(settings),
        exception_handlers=exception_handlers,
        lifespan=[lifespan],
        state=State({"settings": settings}),
        cors_config=cors_config,
        logging_config=logging_config,
        openapi_config=openapi_config,
        debug=settings.debug,
    )
