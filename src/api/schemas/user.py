"""User profile schemas using msgspec."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Annotated
from uuid import UUID

import msgspec

from src.api.schemas.common import CamelStruct
from src.api.security.validation import (
    NAME_MAX_LENGTH,
    PASSWORD_MAX_LENGTH,
    is_valid_national_id,
    is_valid_person_name,
)
from src.core.enums import UserRole

if TYPE_CHECKING:
    from src.api.services.user import UserStatistics
    from src.db.models import HouseAssociation, Membership, User

PersonName = Annotated[str, msgspec.Meta(min_length=1, max_length=NAME_MAX_LENGTH)]

# -----------------------------------------------------------------------------
# Request schemas
# -----------------------------------------------------------------------------


class UpdateProfileRequest(CamelStruct, kw_only=True):
    """Update user profile request.

    All fields are optional - only provided fields are updated.
    """

    first_name: PersonName | None = None
    last_name: PersonName | None = None
    national_id: str | None = None

    def __post_init__(self) -> None:
        if self.first_name is None and self.last_name is None and self.national_id is None:
            raise ValueError("At least one field must be provided for update")
        if self.first_name is not None and not is_valid_person_name(self.first_name):
            raise ValueError("First name can only contain letters, spaces, apostrophes, and hyphens")
        if self.last_name is not None and not is_valid_person_name(self.last_name):
            raise ValueError("Last name can only contain letters, spaces, apostrophes, and hyphens")
        if self.national_id and not is_valid_national_id(self.national_id):
            raise ValueError("Invalid national id format")


class ChangePasswordRequest(CamelStruct, kw_only=True):
    """Change password request."""

    current_password: Annotated[str, msgspec.Meta(min_length=1)]
    new_password: Annotated[str, msgspec.Meta(min_length=1, max_length=PASSWORD_MAX_LENGTH)]
    confirm_new_password: str

    def __post_init__(self) -> None:
        if self.new_password != self.confirm_new_password:
            raise ValueError("New passwords do not match")


# -----------------------------------------------------------------------------
# Response schemas
# -----------------------------------------------------------------------------


class UserResponse(CamelStruct, kw_only=True):
    """User profile response. Never carries the password hash."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    national_id: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=UserRole(user.role),
            national_id=user.national_id,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class AssociationSummary(CamelStruct, kw_only=True):
    """Short form of a house association for user-centric listings."""

    id: UUID
    name: str
    address: str
    registration_num: str

    @classmethod
    def from_model(cls, association: HouseAssociation) -> AssociationSummary:
        return cls(
            id=association.id,
            name=association.name,
            address=association.address,
            registration_num=association.registration_num,
        )


class UserMembershipResponse(CamelStruct, kw_only=True):
    """A house association the user belongs to."""

    id: UUID
    joined_at: datetime
    house_association: AssociationSummary

    @classmethod
    def from_model(cls, membership: Membership) -> UserMembershipResponse:
        return cls(
            id=membership.id,
            joined_at=membership.created_at,
            house_association=AssociationSummary.from_model(membership.house_association),
        )


class UserStatisticsResponse(CamelStruct, kw_only=True):
    """User counts. ``usersByRole`` lists every role, zero included."""

    total_users: int
    users_by_role: dict[str, int]
    recent_registrations: int

    @classmethod
    def from_statistics(cls, stats: UserStatistics) -> UserStatisticsResponse:
        return cls(
            total_users=stats.total_users,
            users_by_role={role.value: count for role, count in stats.users_by_role.items()},
            recent_registrations=stats.recent_registrations,
        )
