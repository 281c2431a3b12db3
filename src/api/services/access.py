"""Resource-scoped access checks for house associations.

Access to an association is granted to its manager, and to members
(role MEMBER) listed on its roster. A manager of one association has no
implicit access to another.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError

from src.api.security import is_valid_national_id, normalize_national_id
from src.core.enums import UserRole
from src.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from src.db.exceptions import DuplicateRecordError, RepositoryError

if TYPE_CHECKING:
    from src.db.models import HouseAssociation, Membership
    from src.db.repositories import HouseAssociationRepository, UserRepository

logger = logging.getLogger(__name__)


class ResourceAccessValidator:
    """Decides who may read or manage a house association."""

    def __init__(
        self,
        associations: HouseAssociationRepository,
        users: UserRepository,
    ) -> None:
        """Initialize validator.

        Args:
            associations: House association repository.
            users: User repository.
        """
        self._associations = associations
        self._users = users

    async def check_access(self, ha_id: UUID, user_id: UUID, role: UserRole) -> bool:
        """Return whether a user may access an association.

        Any lookup failure denies access.

        Args:
            ha_id: Association ID.
            user_id: Requesting user.
            role: Requesting user's role.

        Returns:
            True for the manager, or for a MEMBER on the roster.
        """
        try:
            association = await self._associations.get_association_with_member(ha_id, user_id)
        except (SQLAlchemyError, RepositoryError) as e:
            logger.warning(f"Access check failed for association {ha_id}: {e}")
            return False

        if association is None:
            return False

        if association.manager_id == user_id:
            return True

        if UserRole(role) is UserRole.MEMBER:
            return any(m.user_id == user_id for m in association.members)

        return False

    async def require_access(self, ha_id: UUID, user_id: UUID, role: UserRole) -> None:
        """Raise unless the user may access the association.

        Raises:
            NotFoundError: If the association does not exist.
            ForbiddenError: If the user has no access.
        """
        if await self._associations.get_association(ha_id) is None:
            raise NotFoundError("House association not found")

        if not await self.check_access(ha_id, user_id, role):
            raise ForbiddenError("You do not have access to this house association")

    async def require_manager(
        self,
        ha_id: UUID,
        user_id: UUID,
        action: str = "update",
    ) -> HouseAssociation:
        """Raise unless the user manages the association.

        Args:
            ha_id: Association ID.
            user_id: Requesting user.
            action: Verb phrase used in the refusal message.

        Returns:
            The association.

        Raises:
            NotFoundError: If the association does not exist.
            ForbiddenError: If the user is not its manager.
        """
        association = await self._associations.get_association(ha_id)
        if association is None:
            raise NotFoundError("House association not found")

        if association.manager_id != user_id:
            raise ForbiddenError(f"Only the manager can {action} the house association")

        return association

    async def require_creator(self, user_id: UUID) -> None:
        """Raise unless the user may create associations.

        Raises:
            NotFoundError: If the user does not exist.
            ForbiddenError: If the user is not a MANAGER.
        """
        user = await self._users.get_user(user_id)
        if user is None:
            raise NotFoundError("Manager not found")

        if UserRole(user.role) is not UserRole.MANAGER:
            raise ForbiddenError(
                "Only users with MANAGER role can create house associations",
                details={"allowedRoles": [UserRole.MANAGER.value]},
            )

    async def require_registration_uniqueness(
        self,
        registration_num: str,
        exclude_id: UUID | None = None,
    ) -> None:
        """Raise if another association already holds the registration code.

        Args:
            registration_num: Registration code.
            exclude_id: Association being updated; its own code is accepted.

        Raises:
            ConflictError: If the code is taken.
        """
        existing = await self._associations.get_association_by_registration_num(
            registration_num, exclude_id=exclude_id
        )
        if existing is not None:
            raise ConflictError(
                "House association with this registration number already exists",
                code="REGISTRATION_NUM_TAKEN",
            )

    async def add_member_by_national_id(
        self,
        ha_id: UUID,
        national_id: str,
        requesting_user_id: UUID,
    ) -> Membership:
        """Add the user holding a national id to an association.

        Args:
            ha_id: Association ID.
            national_id: National id of the user to add.
            requesting_user_id: Must be the association's manager.

        Returns:
            The new membership with its user loaded.

        Raises:
            NotFoundError: If the association or the user does not exist.
            ForbiddenError: If the requester is not the manager.
            ValidationError: If the national id is malformed.
            ConflictError: If the user is already a member.
        """
        await self.require_manager(ha_id, requesting_user_id, action="add members to")

        if not is_valid_national_id(national_id):
            raise ValidationError(
                "Invalid national id format",
                code="INVALID_NATIONAL_ID",
                details={"field": "nationalId"},
            )

        user = await self._users.get_user_by_national_id(normalize_national_id(national_id))
        if user is None:
            raise NotFoundError("User with this national id not found. User must register first.")

        if await self._associations.get_membership(ha_id, user.id) is not None:
            raise ConflictError("User is already a member of this house association")

        try:
            membership = await self._associations.create_membership(
                id=uuid4(),
                user_id=user.id,
                association_id=ha_id,
            )
        except DuplicateRecordError as e:
            raise ConflictError(
                "User is already a member of this house association", cause=e
            ) from e

        logger.info(f"User {user.id} added to association {ha_id} by {requesting_user_id}")
        return membership

    async def remove_member(
        self,
        ha_id: UUID,
        user_id: UUID,
        requesting_user_id: UUID,
    ) -> None:
        """Remove a user from an association.

        Raises:
            NotFoundError: If the association does not exist or the user is
                not a member.
            ForbiddenError: If the requester is not the manager.
        """
        await self.require_manager(ha_id, requesting_user_id, action="remove members from")

        if not await self._associations.delete_membership(ha_id, user_id):
            raise NotFoundError("User is not a member of this house association")

        logger.info(f"User {user_id} removed from association {ha_id} by {requesting_user_id}")
