"""Health check routes."""

from __future__ import annotations

from collections.abc import Sequence

from litestar import Controller, Response, get
from litestar.datastructures import State
from litestar.status_codes import HTTP_200_OK, HTTP_503_SERVICE_UNAVAILABLE

from src.api.middleware import SKIP_RATE_LIMIT
from src.api.schemas.common import HealthResponse
from src.db import DatabaseManager


class HealthController(Controller):
    """Health check endpoints."""

    path = "/health"
    tags: Sequence[str] | None = ["Health"]

    @get("/", opt={SKIP_RATE_LIMIT: True})
    async def health_check(self, state: State) -> Response[HealthResponse]:
        """Check API and database connectivity.

        Answers 503 while the database is unreachable so load balancers
        take the instance out of rotation.
        """
        db: DatabaseManager | None = state.get("db")
        database_connected = db is not None and await db.health_check()

        return Response(
            content=HealthResponse(
                status="healthy" if database_connected else "unhealthy",
                database_connected=database_connected,
            ),
            status_code=HTTP_200_OK if database_connected else HTTP_503_SERVICE_UNAVAILABLE,
        )
