"""Authentication and authorization guards for Litestar routes.

``auth_guard`` resolves the bearer token to a user and stores it in
connection state. ``require_role`` and ``require_self`` build guards
that run after it and decide on the stored principal.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from uuid import UUID

from litestar.connection import ASGIConnection
from litestar.handlers import BaseRouteHandler

from src.core.enums import TokenKind, UserRole
from src.core.exceptions import (
    AuthRequiredError,
    ForbiddenError,
    PrincipalNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
)

if TYPE_CHECKING:
    from src.api.security.jwt import JWTService, TokenClaims
    from src.db.models import User

logger = logging.getLogger(__name__)

PrincipalLoader = Callable[[UUID], Awaitable["User | None"]]
Guard = Callable[[ASGIConnection, BaseRouteHandler], Awaitable[None]]
TargetExtractor = Callable[[ASGIConnection], Any]


@dataclass(frozen=True)
class AuthContext:
    """Authenticated principal and the claims it was resolved from."""

    principal: User
    claims: TokenClaims

    @property
    def user_id(self) -> UUID:
        return self.principal.id

    @property
    def role(self) -> UserRole:
        return UserRole(self.principal.role)


def extract_token_from_header(authorization: str | None) -> str | None:
    """Extract bearer token from Authorization header.

    Only the exact ``"Bearer <token>"`` shape is accepted.

    Args:
        authorization: Authorization header value.

    Returns:
        Token string if valid bearer token, None otherwise.
    """
    if not authorization:
        return None

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        return None
    return parts[1] or None


class Authenticator:
    """Resolves an Authorization header to an authenticated user.

    The principal is re-read from the store on every request so deleted
    accounts and role changes take effect immediately.
    """

    def __init__(self, jwt_service: JWTService, principal_loader: PrincipalLoader) -> None:
        """Initialize authenticator.

        Args:
            jwt_service: Token verifier.
            principal_loader: Loads a user by ID, returning None if missing.
        """
        self._jwt = jwt_service
        self._load_principal = principal_loader

    async def authenticate(self, authorization: str | None) -> AuthContext:
        """Authenticate a request.

        Args:
            authorization: Authorization header value.

        Returns:
            AuthContext for the request.

        Raises:
            AuthRequiredError: If no bearer token is present.
            TokenInvalidError: If the token fails verification.
            PrincipalNotFoundError: If the token's user no longer exists.
        """
        token = extract_token_from_header(authorization)
        if not token:
            raise AuthRequiredError(
                "Authentication required",
                code="AUTH_TOKEN_MISSING",
                details={"reason": "Authorization header with Bearer token is required"},
            )

        try:
            claims = self._jwt.verify(token, TokenKind.ACCESS)
        except (TokenExpiredError, TokenInvalidError) as e:
            raise TokenInvalidError(
                "Invalid or expired token",
                details={"reason": e.message},
                cause=e,
            ) from e

        principal = await self._load_principal(claims.principal_id)
        if principal is None:
            raise PrincipalNotFoundError(
                "User not found",
                details={"reason": "User associated with token no longer exists"},
            )

        return AuthContext(principal=principal, claims=claims)

    async def authenticate_optional(self, authorization: str | None) -> AuthContext | None:
        """Authenticate if credentials are present and valid, otherwise return None."""
        if extract_token_from_header(authorization) is None:
            return None

        try:
            return await self.authenticate(authorization)
        except (TokenInvalidError, AuthRequiredError) as e:
            logger.warning(f"Optional authentication failed: {e.message}")
            return None


def _get_authenticator(connection: ASGIConnection) -> Authenticator:
    authenticator: Authenticator | None = connection.app.state.get("authenticator")
    if authenticator is None:
        raise RuntimeError("Authenticator not configured")
    return authenticator


def _store_context(connection: ASGIConnection, context: AuthContext | None) -> None:
    connection.state["auth"] = context
    connection.state["principal"] = context.principal if context else None
    connection.state["token_claims"] = context.claims if context else None
    connection.state["user_id"] = context.user_id if context else None


async def auth_guard(connection: ASGIConnection, _: BaseRouteHandler) -> None:
    """Guard that requires valid JWT authentication.

    Sets ``auth``, ``principal``, ``token_claims`` and ``user_id`` in
    connection state for downstream guards and handlers.

    Raises:
        AuthRequiredError: If no token is presented or its user is gone.
        TokenInvalidError: If the token fails verification.
    """
    context = await _get_authenticator(connection).authenticate(
        connection.headers.get("authorization")
    )
    _store_context(connection, context)


async def optional_auth_guard(connection: ASGIConnection, _: BaseRouteHandler) -> None:
    """Guard that optionally extracts JWT authentication.

    Never rejects the request. State is populated only for a valid token
    whose user still exists.
    """
    context = await _get_authenticator(connection).authenticate_optional(
        connection.headers.get("authorization")
    )
    _store_context(connection, context)


# -----------------------------------------------------------------------------
# Role and ownership checks
# -----------------------------------------------------------------------------


def has_role(principal: User | None, role: UserRole) -> bool:
    return principal is not None and UserRole(principal.role) == role


def has_any_role(principal: User | None, roles: Iterable[UserRole]) -> bool:
    return principal is not None and UserRole(principal.role) in set(roles)


def check_role(principal: User | None, allowed_roles: tuple[UserRole, ...]) -> None:
    """Raise unless the principal holds one of ``allowed_roles``.

    Raises:
        AuthRequiredError: If there is no principal.
        ForbiddenError: If the principal's role is not allowed.
    """
    if principal is None:
        raise AuthRequiredError(
            "Authentication required",
            details={"reason": "User must be authenticated to access this resource"},
        )

    if not has_any_role(principal, allowed_roles):
        raise ForbiddenError(
            "Insufficient permissions",
            details={
                "reason": f"User role '{UserRole(principal.role).value}' "
                "is not authorized for this resource",
                "allowedRoles": [role.value for role in allowed_roles],
            },
        )


def check_self_access(principal: User | None, target_user_id: Any) -> None:
    """Raise unless the principal is the target user or a manager.

    Raises:
        AuthRequiredError: If there is no principal.
        ValidationError: If the target user ID is missing.
        ForbiddenError: If the principal is neither the target nor a manager.
    """
    if principal is None:
        raise AuthRequiredError(
            "Authentication required",
            details={"reason": "User must be authenticated to access this resource"},
        )

    if target_user_id is None or target_user_id == "":
        raise ValidationError("Missing user identifier")

    if str(principal.id) != str(target_user_id) and not has_role(principal, UserRole.MANAGER):
        raise ForbiddenError(
            "Access denied",
            details={"reason": "Users can only access their own resources"},
        )


def require_role(*allowed_roles: UserRole) -> Guard:
    """Build a guard admitting only the given roles.

    Must run after ``auth_guard``.
    """
    if not allowed_roles:
        raise ValueError("require_role needs at least one role")

    async def role_guard(connection: ASGIConnection, _: BaseRouteHandler) -> None:
        check_role(connection.state.get("principal"), allowed_roles)

    return role_guard


def path_param(name: str = "user_id") -> TargetExtractor:
    """Extractor reading the target user ID from a path parameter."""

    def extract(connection: ASGIConnection) -> Any:
        return connection.path_params.get(name)

    return extract


def require_self(extractor: TargetExtractor | None = None) -> Guard:
    """Build a guard admitting the target user themself or any manager.

    Args:
        extractor: Reads the target user ID from the connection.
            Defaults to the ``user_id`` path parameter.
    """
    extract = extractor or path_param("user_id")

    async def self_guard(connection: ASGIConnection, _: BaseRouteHandler) -> None:
        check_self_access(connection.state.get("principal"), extract(connection))

    return self_guard


require_manager = require_role(UserRole.MANAGER)
require_member_or_manager = require_role(UserRole.MEMBER, UserRole.MANAGER)
