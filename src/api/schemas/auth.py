"""Authentication schemas using msgspec."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

import msgspec

from src.api.schemas.common import CamelStruct
from src.api.schemas.user import UserResponse
from src.api.security.validation import (
    EMAIL_MAX_LENGTH,
    PASSWORD_MAX_LENGTH,
    is_valid_email,
    is_valid_national_id,
    is_valid_person_name,
)
from src.core.enums import UserRole

Email = Annotated[str, msgspec.Meta(min_length=1, max_length=EMAIL_MAX_LENGTH)]
Password = Annotated[str, msgspec.Meta(min_length=1, max_length=PASSWORD_MAX_LENGTH)]

# -----------------------------------------------------------------------------
# Request schemas
# -----------------------------------------------------------------------------


class RegisterRequest(CamelStruct, kw_only=True):
    """User registration request.

    Password strength is checked by the service so every unmet rule can
    be reported at once.
    """

    email: Email
    password: Password
    confirm_password: Password
    first_name: str
    last_name: str
    national_id: str | None = None
    role: UserRole = UserRole.MEMBER

    def __post_init__(self) -> None:
        if not is_valid_email(self.email):
            raise ValueError("Invalid email format")
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        if not is_valid_person_name(self.first_name):
            raise ValueError("First name can only contain letters, spaces, apostrophes, and hyphens")
        if not is_valid_person_name(self.last_name):
            raise ValueError("Last name can only contain letters, spaces, apostrophes, and hyphens")
        if self.national_id and not is_valid_national_id(self.national_id):
            raise ValueError("Invalid national id format")


class LoginRequest(CamelStruct, kw_only=True):
    """User login request."""

    email: Email
    password: Password


class RefreshTokenRequest(CamelStruct, kw_only=True):
    """Token refresh request."""

    refresh_token: Annotated[str, msgspec.Meta(min_length=1)]


# -----------------------------------------------------------------------------
# Response schemas
# -----------------------------------------------------------------------------


class TokenResponse(CamelStruct, kw_only=True):
    """Authentication token response."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int  # Seconds until access token expires
    expires_at: datetime  # Absolute expiration time


class AccessTokenResponse(CamelStruct, kw_only=True):
    """Access token only response (for refresh)."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    expires_at: datetime


class AuthResponse(CamelStruct, kw_only=True):
    """Login result: the user and their tokens."""

    user: UserResponse
    tokens: TokenResponse


class TokenValidationResponse(CamelStruct, kw_only=True):
    valid: bool
    user: UserResponse
