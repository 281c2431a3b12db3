"""User profile API routes."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Annotated
from uuid import UUID

from litestar import Controller, delete, get, patch, put
from litestar.params import Body, Parameter
from litestar.status_codes import HTTP_200_OK

from src.api.routes.house_association import LimitParam, PageParam
from src.api.schemas.common import ApiResponse, PaginationInfo, ok
from src.api.schemas.house_association import HouseAssociationResponse
from src.api.schemas.user import (
    ChangePasswordRequest,
    UpdateProfileRequest,
    UserMembershipResponse,
    UserResponse,
    UserStatisticsResponse,
)
from src.api.security import auth_guard, require_manager, require_self
from src.api.services.user import UserService
from src.core.enums import UserRole
from src.db.models import User

logger = logging.getLogger(__name__)

SearchParam = Annotated[
    str | None, Parameter(min_length=1, max_length=100, description="Search text")
]


class UserController(Controller):
    """User profile management endpoints."""

    path = "/users"
    tags: Sequence[str] | None = ["Users"]
    guards = [auth_guard]

    @get("/me")
    async def get_profile(self, current_user: User, user_service: UserService) -> ApiResponse:
        """Get current user's profile."""
        user = await user_service.get_profile(current_user.id)
        return ok(UserResponse.from_model(user), "User profile retrieved successfully")

    @patch("/me")
    async def update_profile(
        self,
        data: Annotated[UpdateProfileRequest, Body()],
        current_user: User,
        user_service: UserService,
    ) -> ApiResponse:
        """Update current user's profile."""
        user = await user_service.update_profile(
            current_user.id,
            first_name=data.first_name,
            last_name=data.last_name,
            national_id=data.national_id,
        )
        return ok(UserResponse.from_model(user), "Profile updated successfully")

    @put("/me/password", status_code=HTTP_200_OK)
    async def change_password(
        self,
        data: Annotated[ChangePasswordRequest, Body()],
        current_user: User,
        user_service: UserService,
    ) -> ApiResponse:
        """Change current user's password.

        Issued tokens stay valid until they expire.
        """
        await user_service.change_password(
            current_user.id,
            current_password=data.current_password,
            new_password=data.new_password,
        )
        return ok(None, "Password changed successfully")

    @delete("/me", status_code=HTTP_200_OK)
    async def delete_account(self, current_user: User, user_service: UserService) -> ApiResponse:
        """Delete current user's account.

        Refused while the user manages a house association.
        """
        await user_service.delete_account(current_user.id)
        return ok(None, "Account deleted successfully")

    @get("/me/memberships")
    async def list_memberships(self, current_user: User, user_service: UserService) -> ApiResponse:
        """List the house associations the current user belongs to."""
        memberships = await user_service.list_memberships(current_user.id)
        return ok(
            [UserMembershipResponse.from_model(m) for m in memberships],
            "Memberships retrieved successfully",
        )

    @get("/me/managed")
    async def list_managed(self, current_user: User, user_service: UserService) -> ApiResponse:
        """List the house associations the current user manages."""
        associations = await user_service.list_managed(current_user.id)
        return ok(
            [HouseAssociationResponse.from_model(a) for a in associations],
            "Managed house associations retrieved successfully",
        )

    @get("/{user_id:uuid}", guards=[require_self()])
    async def get_user(self, user_id: UUID, user_service: UserService) -> ApiResponse:
        """Get a user's profile. Allowed for the user themself and managers."""
        user = await user_service.get_profile(user_id)
        return ok(UserResponse.from_model(user), "User profile retrieved successfully")

    @delete("/{user_id:uuid}", guards=[require_self()], status_code=HTTP_200_OK)
    async def delete_user(
        self, user_id: UUID, current_user: User, user_service: UserService
    ) -> ApiResponse:
        """Delete a user account. Allowed for the user themself and managers."""
        await user_service.delete_user(user_id, deleted_by=current_user.id)
        return ok(None, "User deleted successfully")

    @get("/", guards=[require_manager])
    async def list_users(
        self,
        user_service: UserService,
        page: PageParam = 1,
        limit: LimitParam = 10,
        role: UserRole | None = None,
        search: SearchParam = None,
    ) -> ApiResponse:
        """List registered users with optional role and text filters. Manager only."""
        users, pagination = await user_service.list_users(
            page=page,
            limit=limit,
            role=role,
            search=search.strip() if search else None,
        )
        return ok(
            [UserResponse.from_model(u) for u in users],
            "Users retrieved successfully",
            pagination=PaginationInfo.from_pagination(pagination),
        )

    @get("/statistics", guards=[require_manager])
    async def get_statistics(self, user_service: UserService) -> ApiResponse:
        """User counts overall, per role and for the last seven days. Manager only."""
        stats = await user_service.statistics()
        return ok(
            UserStatisticsResponse.from_statistics(stats),
            "User statistics retrieved successfully",
        )
