"""House association schemas using msgspec."""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Annotated
from uuid import UUID

import msgspec

from src.api.schemas.common import CamelStruct
from src.api.security.validation import (
    ASSOCIATION_NAME_PATTERN,
    REGISTRATION_NUM_PATTERN,
    is_valid_national_id,
)

if TYPE_CHECKING:
    from src.db.models import HouseAssociation, Membership

AssociationName = Annotated[str, msgspec.Meta(min_length=1, max_length=200)]
Address = Annotated[str, msgspec.Meta(min_length=1, max_length=500)]
RegistrationNum = Annotated[
    str, msgspec.Meta(min_length=1, max_length=20, pattern=REGISTRATION_NUM_PATTERN)
]

_ASSOCIATION_NAME_RE = re.compile(ASSOCIATION_NAME_PATTERN)


def _check_name(name: str | None) -> None:
    if name is not None and _ASSOCIATION_NAME_RE.match(name) is None:
        raise ValueError("House association name contains invalid characters")


# -----------------------------------------------------------------------------
# Request schemas
# -----------------------------------------------------------------------------


class CreateHouseAssociationRequest(CamelStruct, kw_only=True):
    """Create house association request."""

    name: AssociationName
    address: Address
    registration_num: RegistrationNum

    def __post_init__(self) -> None:
        _check_name(self.name)


class UpdateHouseAssociationRequest(CamelStruct, kw_only=True):
    """Update house association request.

    All fields are optional - only provided fields are updated.
    """

    name: AssociationName | None = None
    address: Address | None = None
    registration_num: RegistrationNum | None = None

    def __post_init__(self) -> None:
        if self.name is None and self.address is None and self.registration_num is None:
            raise ValueError("At least one field must be provided for update")
        _check_name(self.name)


class AddMemberRequest(CamelStruct, kw_only=True):
    """Add a registered user to an association by national id."""

    national_id: str

    def __post_init__(self) -> None:
        if not is_valid_national_id(self.national_id):
            raise ValueError("Invalid national id format")


# -----------------------------------------------------------------------------
# Response schemas
# -----------------------------------------------------------------------------


class ManagerSummary(CamelStruct, kw_only=True):
    id: UUID
    first_name: str
    last_name: str
    email: str


class HouseAssociationResponse(CamelStruct, kw_only=True):
    """House association response."""

    id: UUID
    name: str
    address: str
    registration_num: str
    manager_id: UUID
    manager: ManagerSummary | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, association: HouseAssociation) -> HouseAssociationResponse:
        manager = association.manager
        return cls(
            id=association.id,
            name=association.name,
            address=association.address,
            registration_num=association.registration_num,
            manager_id=association.manager_id,
            manager=ManagerSummary(
                id=manager.id,
                first_name=manager.first_name,
                last_name=manager.last_name,
                email=manager.email,
            )
            if manager is not None
            else None,
            created_at=association.created_at,
            updated_at=association.updated_at,
        )


class MemberResponse(CamelStruct, kw_only=True):
    """A roster entry of a house association."""

    id: UUID
    user_id: UUID
    house_association_id: UUID
    first_name: str
    last_name: str
    email: str
    national_id: str | None
    joined_at: datetime

    @classmethod
    def from_model(cls, membership: Membership) -> MemberResponse:
        user = membership.user
        return cls(
            id=membership.id,
            user_id=membership.user_id,
            house_association_id=membership.house_association_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            national_id=user.national_id,
            joined_at=membership.created_at,
        )
