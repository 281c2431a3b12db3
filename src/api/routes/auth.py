"""Authentication API routes."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Annotated

from litestar import Controller, Request, Response, get, post
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED

from src.api.schemas.auth import (
    AccessTokenResponse,
    AuthResponse,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    TokenValidationResponse,
)
from src.api.schemas.common import ApiResponse, ok
from src.api.schemas.user import UserResponse
from src.api.security import auth_guard, optional_auth_guard
from src.api.services.auth import AuthService
from src.db.models import User

logger = logging.getLogger(__name__)


class AuthController(Controller):
    """Authentication endpoints."""

    path = "/auth"
    tags: Sequence[str] | None = ["Authentication"]

    @post("/register", status_code=HTTP_201_CREATED)
    async def register(
        self,
        data: Annotated[RegisterRequest, Body()],
        auth_service: AuthService,
    ) -> Response[ApiResponse]:
        """Register a new user account.

        Tokens are not issued here; the client logs in afterwards.
        """
        user = await auth_service.register(
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role,
            national_id=data.national_id,
        )

        return Response(
            content=ok(UserResponse.from_model(user), "User registered successfully"),
            status_code=HTTP_201_CREATED,
        )

    @post("/login", status_code=HTTP_200_OK)
    async def login(
        self,
        data: Annotated[LoginRequest, Body()],
        auth_service: AuthService,
    ) -> ApiResponse:
        """Authenticate user and return tokens."""
        user, tokens = await auth_service.login(email=data.email, password=data.password)

        return ok(
            AuthResponse(
                user=UserResponse.from_model(user),
                tokens=TokenResponse(
                    access_token=tokens.access_token,
                    refresh_token=tokens.refresh_token,
                    expires_in=tokens.expires_in,
                    expires_at=tokens.expires_at,
                ),
            ),
            "Login successful",
        )

    @post("/refresh", status_code=HTTP_200_OK)
    async def refresh_token(
        self,
        data: Annotated[RefreshTokenRequest, Body()],
        auth_service: AuthService,
    ) -> ApiResponse:
        """Exchange a refresh token for a new access token.

        The refresh token stays valid until it expires.
        """
        token = await auth_service.refresh_access_token(data.refresh_token)

        return ok(
            AccessTokenResponse(
                access_token=token.access_token,
                expires_in=token.expires_in,
                expires_at=token.expires_at,
            ),
            "Token refreshed successfully",
        )

    @post("/logout", status_code=HTTP_200_OK, guards=[optional_auth_guard])
    async def logout(self, request: Request) -> ApiResponse:
        """Log out.

        Tokens are stateless, so the client is responsible for discarding
        them. The call is recorded for the audit log.
        """
        user_id = request.state.get("user_id")
        if user_id is not None:
            logger.info(f"User logged out: {user_id}")

        return ok(None, "Logout successful")

    @get("/me", guards=[auth_guard])
    async def get_current_user_info(self, current_user: User) -> ApiResponse:
        """Get the authenticated user."""
        return ok(UserResponse.from_model(current_user), "User profile retrieved successfully")

    @get("/validate", guards=[auth_guard])
    async def validate_token(self, current_user: User) -> ApiResponse:
        """Check that the presented access token is valid."""
        return ok(
            TokenValidationResponse(valid=True, user=UserResponse.from_model(current_user)),
            "Token is valid",
        )
