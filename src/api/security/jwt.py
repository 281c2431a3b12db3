"""JWT token handling for authentication.

Two token kinds share one claim shape. Access tokens live 15 minutes,
refresh tokens 7 days. Validity is decided entirely by signature,
issuer/audience and the embedded expiry; nothing is stored server-side.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import jwt

from src.core.enums import TokenKind, UserRole
from src.core.exceptions import ConfigurationError, TokenExpiredError, TokenInvalidError

MIN_SECRET_BYTES = 32


@dataclass(frozen=True)
class TokenClaims:
    """Identity claims carried by both token kinds."""

    principal_id: UUID
    email: str
    role: UserRole
    iat: int | None = None  # Issued at timestamp
    exp: int | None = None  # Expiration timestamp

    def identity(self) -> tuple[UUID, str, UserRole]:
        """Claims without the timing fields."""
        return self.principal_id, self.email, self.role


@dataclass(frozen=True)
class JWTConfig:
    """JWT configuration."""

    secret_key: str
    refresh_secret_key: str | None = None
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    issuer: str = "ha-management-api"
    audience: str = "ha-management-client"

    @property
    def effective_refresh_secret(self) -> str:
        """Refresh signing key, falling back to the access key when unset."""
        return self.refresh_secret_key or self.secret_key


class JWTService:
    """JWT token creation and validation.

    Refuses to start with a missing or short signing key.
    """

    def __init__(self, config: JWTConfig, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize JWT service.

        Args:
            config: JWT configuration.
            clock: Returns the current UNIX time in seconds.

        Raises:
            ConfigurationError: If a signing key is missing or too short.
        """
        _check_secret("secret_key", config.secret_key)
        if config.refresh_secret_key is not None:
            _check_secret("refresh_secret_key", config.refresh_secret_key)

        self._config = config
        self._clock = clock

    @property
    def access_token_lifetime(self) -> timedelta:
        """Access token lifetime."""
        return timedelta(minutes=self._config.access_token_expire_minutes)

    @property
    def refresh_token_lifetime(self) -> timedelta:
        """Refresh token lifetime."""
        return timedelta(days=self._config.refresh_token_expire_days)

    @property
    def uses_shared_refresh_secret(self) -> bool:
        return self._config.refresh_secret_key is None

    def create_access_token(self, claims: TokenClaims) -> tuple[str, datetime]:
        """Create a new access token.

        Args:
            claims: Identity to encode. Timing fields are ignored.

        Returns:
            Tuple of (token string, expiration datetime).
        """
        return self._encode(claims, TokenKind.ACCESS)

    def create_refresh_token(self, claims: TokenClaims) -> tuple[str, datetime]:
        """Create a new refresh token.

        Args:
            claims: Identity to encode. Timing fields are ignored.

        Returns:
            Tuple of (token string, expiration datetime).
        """
        return self._encode(claims, TokenKind.REFRESH)

    def verify(self, token: str, kind: TokenKind = TokenKind.ACCESS) -> TokenClaims:
        """Decode and validate a token of the expected kind.

        Args:
            token: JWT token string.
            kind: Expected token kind.

        Returns:
            Decoded claims.

        Raises:
            TokenExpiredError: Signature is valid but the token has expired.
            TokenInvalidError: Any other verification failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_for(kind),
                algorithms=[self._config.algorithm],
                options={
                    "require": ["principalId", "email", "role", "iat", "exp", "type"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
                issuer=self._config.issuer,
                audience=self._config.audience,
            )
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError("Invalid token", cause=e) from e

        if payload.get("type") != kind.value:
            raise TokenInvalidError("Invalid token")

        try:
            exp = int(payload["exp"])
            claims = TokenClaims(
                principal_id=UUID(str(payload["principalId"])),
                email=str(payload["email"]),
                role=UserRole(payload["role"]),
                iat=int(payload["iat"]),
                exp=exp,
            )
        except (TypeError, ValueError) as e:
            raise TokenInvalidError("Invalid token", cause=e) from e

        # Timing is judged by the injected clock only, not by PyJWT.
        now = self._clock()
        if claims.iat is not None and claims.iat > now:
            raise TokenInvalidError("Token used before its issue time")
        if now >= exp:
            raise TokenExpiredError("Token has expired")

        return claims

    def get_user_id_from_token(self, token: str) -> UUID | None:
        """Extract user ID from a valid access token.

        Args:
            token: JWT token string.

        Returns:
            User UUID if valid, None otherwise.
        """
        try:
            return self.verify(token).principal_id
        except (TokenExpiredError, TokenInvalidError):
            return None

    def _secret_for(self, kind: TokenKind) -> str:
        if kind is TokenKind.REFRESH:
            return self._config.effective_refresh_secret
        return self._config.secret_key

    def _encode(self, claims: TokenClaims, kind: TokenKind) -> tuple[str, datetime]:
        now = int(self._clock())
        lifetime = (
            self.refresh_token_lifetime if kind is TokenKind.REFRESH else self.access_token_lifetime
        )
        exp = now + int(lifetime.total_seconds())

        payload: dict[str, Any] = {
            "principalId": str(claims.principal_id),
            "email": claims.email,
            "role": UserRole(claims.role).value,
            "iat": now,
            "exp": exp,
            "iss": self._config.issuer,
            "aud": self._config.audience,
            "type": kind.value,
        }

        token = jwt.encode(
            payload,
            self._secret_for(kind),
            algorithm=self._config.algorithm,
        )

        return token, datetime.fromtimestamp(exp, tz=timezone.utc)


def _check_secret(name: str, secret: str | None) -> None:
    if not secret:
        raise ConfigurationError(f"JWT {name} is required")
    if len(secret.encode()) < MIN_SECRET_BYTES:
        raise ConfigurationError(f"JWT {name} must be at least {MIN_SECRET_BYTES} bytes long")
