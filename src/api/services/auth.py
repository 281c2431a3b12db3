"""Authentication service for user registration, login and token refresh."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from src.api.security import (
    JWTService,
    PasswordService,
    TokenClaims,
    check_password_strength,
    is_valid_national_id,
    normalize_email,
    normalize_national_id,
)
from src.api.services.common import store_errors
from src.core.enums import TokenKind, UserRole
from src.core.exceptions import (
    AlreadyExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
    WeakPasswordError,
)
from src.db.exceptions import DuplicateRecordError
from src.db.repositories import UserRepository

if TYPE_CHECKING:
    from src.db.models import User

logger = logging.getLogger(__name__)


@dataclass
class TokenPair:
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    expires_at: datetime
    expires_in: int


@dataclass
class AccessToken:
    """Access token issued from a refresh token."""

    access_token: str
    expires_at: datetime
    expires_in: int


def claims_for(user: User) -> TokenClaims:
    """Token identity for a user as currently stored."""
    return TokenClaims(
        principal_id=user.id,
        email=user.email,
        role=UserRole(user.role),
    )


class AuthService:
    """Authentication service.

    Handles registration, credential checks, token issuance and refresh.
    Tokens are stateless: refresh tokens stay valid until they expire and
    logout is handled by the client discarding them.
    """

    def __init__(
        self,
        repository: UserRepository,
        jwt_service: JWTService,
        password_service: PasswordService,
    ) -> None:
        """Initialize auth service.

        Args:
            repository: User repository.
            jwt_service: JWT token service.
            password_service: Password hashing service.
        """
        self._repo = repository
        self._jwt = jwt_service
        self._password = password_service

    async def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.MEMBER,
        national_id: str | None = None,
    ) -> User:
        """Register a new user.

        Args:
            email: User email. Trimmed and lower-cased before storage.
            password: Plain text password.
            first_name: Given name.
            last_name: Family name.
            role: Global role, MEMBER unless stated.
            national_id: Optional national id, separators allowed.

        Returns:
            Created User.

        Raises:
            ValidationError: If the national id is malformed.
            WeakPasswordError: If the password fails the strength policy.
            AlreadyExistsError: If email or national id is taken.
        """
        email = normalize_email(email)

        cleaned_national_id: str | None = None
        if national_id:
            if not is_valid_national_id(national_id):
                raise ValidationError(
                    "Invalid national id format",
                    code="INVALID_NATIONAL_ID",
                    details={"field": "nationalId"},
                )
            cleaned_national_id = normalize_national_id(national_id)

        password_errors = check_password_strength(password)
        if password_errors:
            raise WeakPasswordError(password_errors)

        with store_errors("register user"):
            if await self._repo.email_exists(email):
                raise AlreadyExistsError("User with this email already exists", code="EMAIL_TAKEN")

            if cleaned_national_id and await self._repo.national_id_exists(cleaned_national_id):
                raise AlreadyExistsError(
                    "User with this national id already exists", code="NATIONAL_ID_TAKEN"
                )

            user_id = uuid4()
            password_hash = self._password.hash(password)

            try:
                user = await self._repo.create_user(
                    id=user_id,
                    email=email,
                    password_hash=password_hash,
                    first_name=first_name.strip(),
                    last_name=last_name.strip(),
                    role=role,
                    national_id=cleaned_national_id,
                )
            except DuplicateRecordError as e:
                # Lost a race with a concurrent registration
                raise AlreadyExistsError(
                    "User with this email or national id already exists", cause=e
                ) from e

        logger.info(f"User registered: {user_id} ({email}) as {UserRole(role).value}")
        return user

    async def authenticate(self, *, email: str, password: str) -> User | None:
        """Check an email/password pair.

        An unknown email still costs one hash so response time does not
        reveal whether the account exists.

        Args:
            email: User email.
            password: Plain text password.

        Returns:
            The user when the credentials match, None otherwise.
        """
        with store_errors("authenticate user"):
            user = await self._repo.get_user_by_email(normalize_email(email))

            stored_hash = user.password_hash if user is not None else None
            if not self._password.verify_or_burn(stored_hash, password) or user is None:
                return None

            # Check if password needs rehash (parameter upgrade)
            if self._password.needs_rehash(user.password_hash):
                new_hash = self._password.hash(password)
                await self._repo.update_user(user.id, password_hash=new_hash)
                logger.info(f"Rehashed password for user {user.id}")

        return user

    async def login(self, *, email: str, password: str) -> tuple[User, TokenPair]:
        """Authenticate user and return tokens.

        Args:
            email: User email.
            password: Plain text password.

        Returns:
            Tuple of (User, TokenPair).

        Raises:
            InvalidCredentialsError: If email or password is wrong.
        """
        user = await self.authenticate(email=email, password=password)
        if user is None:
            logger.info("Failed login attempt")
            raise InvalidCredentialsError("Invalid email or password")

        logger.info(f"User logged in: {user.id}")
        return user, self.issue_token_pair(user)

    def issue_token_pair(self, user: User) -> TokenPair:
        """Create an access/refresh token pair for a user.

        Args:
            user: Authenticated user.

        Returns:
            TokenPair with the access token's expiry.
        """
        claims = claims_for(user)
        access_token, expires_at = self._jwt.create_access_token(claims)
        refresh_token, _ = self._jwt.create_refresh_token(claims)

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            expires_in=int(self._jwt.access_token_lifetime.total_seconds()),
        )

    async def refresh_access_token(self, refresh_token: str) -> AccessToken:
        """Exchange a refresh token for a new access token.

        The user is re-read so the new token reflects the current email and
        role. The refresh token itself is not rotated.

        Args:
            refresh_token: Refresh token string.

        Returns:
            New access token.

        Raises:
            InvalidRefreshTokenError: If the token fails verification or
                its user no longer exists.
        """
        try:
            claims = self._jwt.verify(refresh_token, TokenKind.REFRESH)
        except (TokenExpiredError, TokenInvalidError) as e:
            raise InvalidRefreshTokenError(
                "Invalid refresh token", details={"reason": e.message}, cause=e
            ) from e

        with store_errors("refresh access token"):
            user = await self._repo.get_user(claims.principal_id)
        if user is None:
            logger.warning(f"Refresh attempted for missing user {claims.principal_id}")
            raise InvalidRefreshTokenError(
                "Invalid refresh token", details={"reason": "User no longer exists"}
            )

        access_token, expires_at = self._jwt.create_access_token(claims_for(user))
        logger.info(f"Access token refreshed for user {user.id}")

        return AccessToken(
            access_token=access_token,
            expires_at=expires_at,
            expires_in=int(self._jwt.access_token_lifetime.total_seconds()),
        )

    async def get_principal(self, user_id: UUID) -> User | None:
        """Load the user a verified token names.

        Args:
            user_id: User ID from token claims.

        Returns:
            User if found, None otherwise.
        """
        with store_errors("load user"):
            return await self._repo.get_user(user_id)
