"""House association API routes."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Annotated
from uuid import UUID

from litestar import Controller, Response, delete, get, patch, post
from litestar.params import Body, Parameter
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED

from src.api.schemas.common import ApiResponse, PaginationInfo, ok
from src.api.schemas.house_association import (
    AddMemberRequest,
    CreateHouseAssociationRequest,
    HouseAssociationResponse,
    MemberResponse,
    UpdateHouseAssociationRequest,
)
from src.api.security import auth_guard, require_manager
from src.api.services.house_association import HouseAssociationService
from src.core.enums import UserRole
from src.db.models import User

logger = logging.getLogger(__name__)

PageParam = Annotated[int, Parameter(ge=1, description="Page number")]
LimitParam = Annotated[int, Parameter(ge=1, le=100, description="Items per page")]


class HouseAssociationController(Controller):
    """House association and membership endpoints.

    Every route requires authentication. Per-association access is decided
    by the service: the manager, or a member on the roster.
    """

    path = "/house-associations"
    tags: Sequence[str] | None = ["House Associations"]
    guards = [auth_guard]

    @post("/", status_code=HTTP_201_CREATED, guards=[require_manager])
    async def create_house_association(
        self,
        data: Annotated[CreateHouseAssociationRequest, Body()],
        current_user: User,
        house_association_service: HouseAssociationService,
    ) -> Response[ApiResponse]:
        """Create a house association managed by the current user."""
        association = await house_association_service.create(
            name=data.name,
            address=data.address,
            registration_num=data.registration_num,
            manager_id=current_user.id,
        )
        return Response(
            content=ok(
                HouseAssociationResponse.from_model(association),
                "House association created successfully",
            ),
            status_code=HTTP_201_CREATED,
        )

    @get("/")
    async def list_house_associations(
        self,
        current_user: User,
        house_association_service: HouseAssociationService,
        page: PageParam = 1,
        limit: LimitParam = 10,
        search: str | None = None,
    ) -> ApiResponse:
        """List house associations visible to the current user."""
        items, pagination = await house_association_service.list(
            current_user.id,
            UserRole(current_user.role),
            page=page,
            limit=limit,
            search=search.strip() if search else None,
        )
        return ok(
            [HouseAssociationResponse.from_model(a) for a in items],
            "House associations retrieved successfully",
            pagination=PaginationInfo.from_pagination(pagination),
        )

    @get("/{ha_id:uuid}")
    async def get_house_association(
        self,
        ha_id: UUID,
        current_user: User,
        house_association_service: HouseAssociationService,
    ) -> ApiResponse:
        """Get one house association."""
        association = await house_association_service.get(
            ha_id, current_user.id, UserRole(current_user.role)
        )
        return ok(
            HouseAssociationResponse.from_model(association),
            "House association retrieved successfully",
        )

    @patch("/{ha_id:uuid}")
    async def update_house_association(
        self,
        ha_id: UUID,
        data: Annotated[UpdateHouseAssociationRequest, Body()],
        current_user: User,
        house_association_service: HouseAssociationService,
    ) -> ApiResponse:
        """Update a house association. Manager only."""
        association = await house_association_service.update(
            ha_id,
            current_user.id,
            name=data.name,
            address=data.address,
            registration_num=data.registration_num,
        )
        return ok(
            HouseAssociationResponse.from_model(association),
            "House association updated successfully",
        )

    @delete("/{ha_id:uuid}", status_code=HTTP_200_OK)
    async def delete_house_association(
        self,
        ha_id: UUID,
        current_user: User,
        house_association_service: HouseAssociationService,
    ) -> ApiResponse:
        """Delete a house association and its memberships. Manager only."""
        await house_association_service.delete(ha_id, current_user.id)
        return ok(None, "House association deleted successfully")

    @post("/{ha_id:uuid}/members", status_code=HTTP_201_CREATED)
    async def add_member(
        self,
        ha_id: UUID,
        data: Annotated[AddMemberRequest, Body()],
        current_user: User,
        house_association_service: HouseAssociationService,
    ) -> Response[ApiResponse]:
        """Add a registered user to the association by national id. Manager only."""
        membership = await house_association_service.add_member(
            ha_id, data.national_id, current_user.id
        )
        return Response(
            content=ok(MemberResponse.from_model(membership), "Member added successfully"),
            status_code=HTTP_201_CREATED,
        )

    @get("/{ha_id:uuid}/members")
    async def list_members(
        self,
        ha_id: UUID,
        current_user: User,
        house_association_service: HouseAssociationService,
        page: PageParam = 1,
        limit: LimitParam = 10,
    ) -> ApiResponse:
        """List the association's members."""
        members, pagination = await house_association_service.list_members(
            ha_id,
            current_user.id,
            UserRole(current_user.role),
            page=page,
            limit=limit,
        )
        return ok(
            [MemberResponse.from_model(m) for m in members],
            "Members retrieved successfully",
            pagination=PaginationInfo.from_pagination(pagination),
        )

    @delete("/{ha_id:uuid}/members/{user_id:uuid}", status_code=HTTP_200_OK)
    async def remove_member(
        self,
        ha_id: UUID,
        user_id: UUID,
        current_user: User,
        house_association_service: HouseAssociationService,
    ) -> ApiResponse:
        """Remove a member from the association. Manager only."""
        await house_association_service.remove_member(ha_id, user_id, current_user.id)
        return ok(None, "Member removed successfully")
