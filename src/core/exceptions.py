"""Application error taxonomy.

Every domain failure is an ``AppError`` carrying a discriminant ``kind``.
Errors are raised close to the failure point and propagate unchanged to
the HTTP boundary, which maps ``kind`` to a status code.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Discriminant for application errors."""

    ALREADY_EXISTS = "already_exists"
    INVALID_CREDENTIALS = "invalid_credentials"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    AUTH_REQUIRED = "auth_required"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    INTERNAL = "internal"


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing or weak."""


class AppError(Exception):
    """Base application error."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details
        self.cause = cause

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind.value} code={self.code}>"


class AlreadyExistsError(AppError):
    """A unique attribute (email, national id) is already taken."""

    kind = ErrorKind.ALREADY_EXISTS
    default_code = "ALREADY_EXISTS"


class InvalidCredentialsError(AppError):
    """Email/password combination rejected.

    The message is deliberately generic: unknown email and wrong
    password must be indistinguishable.
    """

    kind = ErrorKind.INVALID_CREDENTIALS
    default_code = "INVALID_CREDENTIALS"


class TokenExpiredError(AppError):
    """Token signature is valid but its expiry has passed."""

    kind = ErrorKind.TOKEN_EXPIRED
    default_code = "AUTH_TOKEN_EXPIRED"


class TokenInvalidError(AppError):
    """Bad signature, malformed token, wrong issuer/audience or wrong kind."""

    kind = ErrorKind.TOKEN_INVALID
    default_code = "AUTH_TOKEN_INVALID"


class InvalidRefreshTokenError(TokenInvalidError):
    """Refresh token could not be exchanged for a new access token."""

    default_code = "INVALID_REFRESH_TOKEN"


class AuthRequiredError(AppError):
    """No usable credentials were presented."""

    kind = ErrorKind.AUTH_REQUIRED
    default_code = "AUTH_REQUIRED"


class PrincipalNotFoundError(AuthRequiredError):
    """Token verified but the user it names no longer exists."""

    default_code = "AUTH_USER_NOT_FOUND"


class ForbiddenError(AppError):
    """Authenticated but not allowed."""

    kind = ErrorKind.FORBIDDEN
    default_code = "AUTH_FORBIDDEN"


class NotFoundError(AppError):
    """Requested record does not exist."""

    kind = ErrorKind.NOT_FOUND
    default_code = "NOT_FOUND"


class ConflictError(AppError):
    """Operation collides with existing state."""

    kind = ErrorKind.CONFLICT
    default_code = "CONFLICT"


class ValidationError(AppError):
    """Input failed a business validation rule."""

    kind = ErrorKind.VALIDATION
    default_code = "VALIDATION_ERROR"


class WeakPasswordError(ValidationError):
    """Password does not satisfy the strength policy.

    ``errors`` lists every unmet rule.
    """

    default_code = "WEAK_PASSWORD"

    def __init__(self, errors: list[str]) -> None:
        super().__init__(
            f"Password validation failed: {', '.join(errors)}",
            details={"errors": list(errors)},
        )
        self.errors = list(errors)


class InternalError(AppError):
    """Unexpected store or crypto failure."""

    kind = ErrorKind.INTERNAL
    default_code = "INTERNAL_ERROR"
