"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from src.api.security import JWTConfig, JWTService, PasswordService
from src.api.services.access import ResourceAccessValidator
from src.api.services.auth import AuthService
from src.api.services.house_association import HouseAssociationService
from src.api.services.user import UserService
from src.core.enums import UserRole
from src.db import Base, DatabaseManager
from src.db.models import User
from src.db.repositories import HouseAssociationRepository, UserRepository

ACCESS_SECRET = "test_access_secret_key_for_testing_only_0123456789"
REFRESH_SECRET = "test_refresh_secret_key_for_testing_only_0123456789"
STRONG_PASSWORD = "Str0ng!Pass"

# All connections share one in-memory database through StaticPool.
SQLITE_TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def password_service() -> PasswordService:
    """Create a low-cost password service for testing."""
    return PasswordService(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def jwt_config() -> JWTConfig:
    """Create JWT config for testing."""
    return JWTConfig(
        secret_key=ACCESS_SECRET,
        refresh_secret_key=REFRESH_SECRET,
        access_token_expire_minutes=15,
        refresh_token_expire_days=7,
    )


@pytest.fixture
def jwt_service(jwt_config: JWTConfig) -> JWTService:
    """Create JWT service for testing."""
    return JWTService(jwt_config)


@pytest.fixture
def mock_user_repository() -> AsyncMock:
    """Create mock user repository."""
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def mock_association_repository() -> AsyncMock:
    """Create mock house association repository."""
    return AsyncMock(spec=HouseAssociationRepository)


@pytest.fixture
def make_user(password_service: PasswordService) -> Callable[..., User]:
    """Factory for detached User instances."""

    def factory(
        *,
        email: str = "user@example.com",
        password: str = STRONG_PASSWORD,
        role: UserRole = UserRole.MEMBER,
        national_id: str | None = None,
        first_name: str = "Jón",
        last_name: str = "Jónsson",
    ) -> User:
        now = datetime.now(timezone.utc)
        return User(
            id=_next_id(),
            email=email,
            password_hash=password_service.hash(password),
            first_name=first_name,
            last_name=last_name,
            role=role.value,
            national_id=national_id,
            created_at=now,
            updated_at=now,
        )

    return factory


_counter = 0


def _next_id() -> UUID:
    global _counter
    _counter += 1
    return UUID(int=_counter)


# -----------------------------------------------------------------------------
# SQLite database
# -----------------------------------------------------------------------------


@pytest.fixture
def sqlite_db() -> DatabaseManager:
    """In-memory SQLite database without a schema.

    pysqlite's own transaction handling is switched off so SAVEPOINTs work,
    and foreign keys are enforced so ON DELETE CASCADE behaves as on
    PostgreSQL. No connection is opened until first use, so the manager can
    be handed to an app running on another event loop.
    """
    db = DatabaseManager(SQLITE_TEST_DATABASE_URL, poolclass=StaticPool)

    @event.listens_for(db.engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(db.engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    return db


@pytest_asyncio.fixture
async def database(sqlite_db: DatabaseManager) -> AsyncIterator[DatabaseManager]:
    """Fresh database with all tables created."""
    async with sqlite_db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield sqlite_db
    await sqlite_db.close()


@pytest_asyncio.fixture
async def session(database: DatabaseManager) -> AsyncIterator[AsyncSession]:
    """Session shared by the repositories of one test."""
    async with database.session() as session:
        yield session


@pytest.fixture
def user_repository(session: AsyncSession) -> UserRepository:
    return UserRepository(session)


@pytest.fixture
def association_repository(session: AsyncSession) -> HouseAssociationRepository:
    return HouseAssociationRepository(session)


@pytest.fixture
def auth_service(
    user_repository: UserRepository,
    jwt_service: JWTService,
    password_service: PasswordService,
) -> AuthService:
    """Auth service over the SQLite database."""
    return AuthService(
        repository=user_repository,
        jwt_service=jwt_service,
        password_service=password_service,
    )


@pytest.fixture
def user_service(
    user_repository: UserRepository,
    password_service: PasswordService,
) -> UserService:
    """User service over the SQLite database."""
    return UserService(
        repository=user_repository,
        password_service=password_service,
    )


@pytest.fixture
def access_validator(
    association_repository: HouseAssociationRepository,
    user_repository: UserRepository,
) -> ResourceAccessValidator:
    return ResourceAccessValidator(association_repository, user_repository)


@pytest.fixture
def house_association_service(
    association_repository: HouseAssociationRepository,
    user_repository: UserRepository,
    access_validator: ResourceAccessValidator,
) -> HouseAssociationService:
    return HouseAssociationService(
        association_repository,
        user_repository,
        validator=access_validator,
    )


@pytest.fixture
def seed_user(
    user_repository: UserRepository,
    password_service: PasswordService,
) -> Callable[..., Awaitable[User]]:
    """Factory inserting a user straight through the repository."""

    async def factory(
        *,
        email: str = "user@example.com",
        password: str = STRONG_PASSWORD,
        role: UserRole = UserRole.MEMBER,
        national_id: str | None = None,
        first_name: str = "Jón",
        last_name: str = "Jónsson",
    ) -> User:
        return await user_repository.create_user(
            id=uuid4(),
            email=email,
            password_hash=password_service.hash(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            national_id=national_id,
        )

    return factory
