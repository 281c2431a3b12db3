"""Tests for error-to-response mapping."""

from collections.abc import Iterator

import pytest
from litestar import get
from litestar.datastructures import State
from litestar.testing import TestClient, create_test_client

from src.api.errors import STATUS_BY_KIND, exception_handlers, status_for
from src.core.config import Settings
from src.core.enums import Environment
from src.core.exceptions import (
    AlreadyExistsError,
    ConflictError,
    ErrorKind,
    InternalError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    NotFoundError,
    PrincipalNotFoundError,
    WeakPasswordError,
)


def test_every_kind_has_a_status() -> None:
    assert set(STATUS_BY_KIND) == set(ErrorKind)


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (AlreadyExistsError("taken"), 409),
        (ConflictError("busy"), 409),
        (InvalidCredentialsError("nope"), 401),
        (InvalidRefreshTokenError("nope"), 401),
        (PrincipalNotFoundError("gone"), 401),
        (NotFoundError("missing"), 404),
        (WeakPasswordError(["too short"]), 400),
        (InternalError("boom"), 500),
    ],
)
def test_status_for(error, status: int) -> None:
    assert status_for(error.kind) == status


@get("/conflict")
async def conflict() -> None:
    raise ConflictError("Already there", code="SOMETHING_TAKEN", details={"field": "x"})


@get("/internal")
async def internal() -> None:
    raise InternalError("connection pool exhausted")


@get("/crash")
async def crash() -> None:
    raise RuntimeError("unexpected")


def _client(environment: Environment) -> TestClient:
    settings = Settings(_env_file=None, jwt_secret="s" * 32, environment=environment)
    return create_test_client(
        route_handlers=[conflict, internal, crash],
        exception_handlers=exception_handlers,
        state=State({"settings": settings}),
    )


@pytest.fixture
def production_client() -> Iterator[TestClient]:
    with _client(Environment.PRODUCTION) as client:
        yield client


@pytest.fixture
def development_client() -> Iterator[TestClient]:
    with _client(Environment.DEVELOPMENT) as client:
        yield client


def test_app_error_envelope(production_client: TestClient) -> None:
    response = production_client.get("/conflict")

    assert response.status_code == 409
    assert response.json()["error"] == "SOMETHING_TAKEN"
    assert response.json()["message"] == "Already there"
    assert response.json()["details"] == {"field": "x"}


def test_internal_message_hidden_in_production(production_client: TestClient) -> None:
    internal_response = production_client.get("/internal")
    crash_response = production_client.get("/crash")

    assert internal_response.status_code == 500
    assert internal_response.json()["message"] == "Internal server error"
    assert crash_response.status_code == 500
    assert crash_response.json()["error"] == "INTERNAL_ERROR"
    assert crash_response.json()["message"] == "Internal server error"


def test_internal_message_shown_in_development(development_client: TestClient) -> None:
    response = development_client.get("/internal")

    assert response.json()["message"] == "connection pool exhausted"


def test_unknown_route_uses_envelope(production_client: TestClient) -> None:
    response = production_client.get("/nowhere")

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"
    assert response.json()["success"] is False
