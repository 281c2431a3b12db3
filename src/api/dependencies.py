"""Dependency injection providers for Litestar.

Long-lived services are built once in the application lifespan and kept
on ``app.state``; request-scoped services are assembled per request
around a fresh database session.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from uuid import UUID

from litestar import Request
from litestar.datastructures import State
from litestar.di import Provide
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.security import Authenticator, JWTConfig, JWTService, PasswordService
from src.api.security.guards import PrincipalLoader
from src.api.services import (
    AuthService,
    HouseAssociationService,
    ResourceAccessValidator,
    UserService,
)
from src.core.config import Settings
from src.core.exceptions import AuthRequiredError
from src.db import DatabaseManager
from src.db.models import User
from src.db.repositories import HouseAssociationRepository, UserRepository

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Construction (called from the lifespan hook)
# -----------------------------------------------------------------------------


def build_jwt_service(settings: Settings) -> JWTService:
    """Build the token service from settings.

    Raises:
        ConfigurationError: If a signing key is missing or too short.
    """
    jwt_config = JWTConfig(
        secret_key=settings.jwt_secret,
        refresh_secret_key=settings.jwt_refresh_secret,
        algorithm=settings.jwt_algorithm,
        access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
        refresh_token_expire_days=settings.jwt_refresh_token_expire_days,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
    )
    service = JWTService(jwt_config)
    if service.uses_shared_refresh_secret:
        logger.warning("JWT_REFRESH_SECRET not set, refresh tokens are signed with JWT_SECRET")
    return service


def build_principal_loader(db: DatabaseManager) -> PrincipalLoader:
    """Loader reading the token's user in its own short session."""

    async def load_principal(user_id: UUID) -> User | None:
        async with db.session() as session:
            return await UserRepository(session).get_user(user_id)

    return load_principal


def init_services(state: State, settings: Settings) -> None:
    """Create long-lived services and store them on application state.

    Args:
        state: Application state.
        settings: Application settings.
    """
    db = DatabaseManager.from_settings(settings)
    logger.info("Database connection pool initialized")

    jwt_service = build_jwt_service(settings)
    state.db = db
    state.jwt_service = jwt_service
    state.password_service = PasswordService()
    state.authenticator = Authenticator(jwt_service, build_principal_loader(db))
    logger.info("Authentication services initialized")


async def shutdown_services(state: State) -> None:
    """Release resources held on application state."""
    db: DatabaseManager | None = state.get("db")
    if db is not None:
        await db.close()
        logger.info("Database connections closed")
    for key in ("db", "jwt_service", "password_service", "authenticator"):
        state.pop(key, None)


# -----------------------------------------------------------------------------
# Providers
# -----------------------------------------------------------------------------


def _from_state(state: State, key: str) -> object:
    value = state.get(key)
    if value is None:
        raise RuntimeError(f"{key} not initialized")
    return value


def provide_settings(state: State) -> Settings:
    return _from_state(state, "settings")  # type: ignore[return-value]


def provide_jwt_service(state: State) -> JWTService:
    return _from_state(state, "jwt_service")  # type: ignore[return-value]


def provide_password_service(state: State) -> PasswordService:
    return _from_state(state, "password_service")  # type: ignore[return-value]


async def get_db_session(state: State) -> AsyncGenerator[AsyncSession, None]:
    """Provide database session for request scope.

    Yields:
        Database session that commits on success and rolls back on error.
    """
    db: DatabaseManager = _from_state(state, "db")  # type: ignore[assignment]
    async with db.session() as session:
        yield session


async def get_auth_service(
    session: AsyncSession,
    jwt_service: JWTService,
    password_service: PasswordService,
) -> AuthService:
    """Provide auth service for request scope."""
    return AuthService(
        repository=UserRepository(session),
        jwt_service=jwt_service,
        password_service=password_service,
    )


async def get_user_service(
    session: AsyncSession,
    password_service: PasswordService,
) -> UserService:
    """Provide user service for request scope."""
    return UserService(
        repository=UserRepository(session),
        password_service=password_service,
    )


async def get_house_association_service(session: AsyncSession) -> HouseAssociationService:
    """Provide house association service for request scope."""
    associations = HouseAssociationRepository(session)
    users = UserRepository(session)
    return HouseAssociationService(
        associations,
        users,
        validator=ResourceAccessValidator(associations, users),
    )


async def get_current_user(request: Request) -> User:
    """Authenticated user stored by ``auth_guard``.

    Raises:
        AuthRequiredError: If the route ran without authentication.
    """
    principal: User | None = request.state.get("principal")
    if principal is None:
        raise AuthRequiredError("Authentication required")
    return principal


# Dependency providers for Litestar
dependencies = {
    "settings": Provide(provide_settings, sync_to_thread=False),
    "jwt_service": Provide(provide_jwt_service, sync_to_thread=False),
    "password_service": Provide(provide_password_service, sync_to_thread=False),
    "session": Provide(get_db_session),
    "auth_service": Provide(get_auth_service),
    "user_service": Provide(get_user_service),
    "house_association_service": Provide(get_house_association_service),
    "current_user": Provide(get_current_user),
}
