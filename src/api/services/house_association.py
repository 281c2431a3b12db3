"""House association management service."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from src.api.services.access import ResourceAccessValidator
from src.api.services.common import Pagination, store_errors
from src.core.enums import UserRole
from src.core.exceptions import ConflictError, NotFoundError
from src.db.exceptions import DuplicateRecordError

if TYPE_CHECKING:
    from src.db.models import HouseAssociation, Membership
    from src.db.repositories import HouseAssociationRepository, UserRepository

logger = logging.getLogger(__name__)


class HouseAssociationService:
    """Create, read, update and delete house associations and their rosters.

    Every operation goes through ``ResourceAccessValidator`` first.
    """

    def __init__(
        self,
        associations: HouseAssociationRepository,
        users: UserRepository,
        validator: ResourceAccessValidator | None = None,
    ) -> None:
        """Initialize service.

        Args:
            associations: House association repository.
            users: User repository.
            validator: Access validator. Built from the repositories if omitted.
        """
        self._repo = associations
        self._validator = validator or ResourceAccessValidator(associations, users)

    @property
    def validator(self) -> ResourceAccessValidator:
        return self._validator

    async def create(
        self,
        *,
        name: str,
        address: str,
        registration_num: str,
        manager_id: UUID,
    ) -> HouseAssociation:
        """Create a house association managed by ``manager_id``.

        Raises:
            NotFoundError: If the manager does not exist.
            ForbiddenError: If the manager lacks the MANAGER role.
            ConflictError: If the registration code is taken.
        """
        with store_errors("create house association"):
            await self._validator.require_creator(manager_id)
            await self._validator.require_registration_uniqueness(registration_num)

            try:
                association = await self._repo.create_association(
                    id=uuid4(),
                    name=name.strip(),
                    address=address.strip(),
                    registration_num=registration_num,
                    manager_id=manager_id,
                )
            except DuplicateRecordError as e:
                raise ConflictError(
                    "House association with this registration number already exists",
                    code="REGISTRATION_NUM_TAKEN",
                    cause=e,
                ) from e

        logger.info(f"House association created: {association.id} by {manager_id}")
        return association

    async def get(self, ha_id: UUID, user_id: UUID, role: UserRole) -> HouseAssociation:
        """Get an association the user may access.

        Raises:
            NotFoundError: If it does not exist.
            ForbiddenError: If the user has no access.
        """
        with store_errors("fetch house association"):
            await self._validator.require_access(ha_id, user_id, role)
            association = await self._repo.get_association(ha_id)

        if association is None:
            raise NotFoundError("House association not found")
        return association

    async def list(
        self,
        user_id: UUID,
        role: UserRole,
        *,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
    ) -> tuple[Sequence[HouseAssociation], Pagination]:
        """List associations visible to a user.

        Managers see the associations they manage; members see the ones
        they belong to.

        Returns:
            Tuple of (associations, pagination).
        """
        filters: dict[str, UUID | str | None] = {"search": search or None}
        if UserRole(role) is UserRole.MANAGER:
            filters["manager_id"] = user_id
        else:
            filters["member_id"] = user_id

        with store_errors("list house associations"):
            total = await self._repo.count_associations(**filters)
            pagination = Pagination(page=page, limit=limit, total=total)
            items = await self._repo.list_associations(
                **filters, limit=limit, offset=pagination.offset
            )

        return items, pagination

    async def update(
        self,
        ha_id: UUID,
        user_id: UUID,
        *,
        name: str | None = None,
        address: str | None = None,
        registration_num: str | None = None,
    ) -> HouseAssociation:
        """Update an association. Manager only.

        Raises:
            NotFoundError: If it does not exist.
            ForbiddenError: If the user is not its manager.
            ConflictError: If the new registration code is held by another association.
        """
        with store_errors("update house association"):
            await self._validator.require_manager(ha_id, user_id, action="update")

            if registration_num is not None:
                await self._validator.require_registration_uniqueness(
                    registration_num, exclude_id=ha_id
                )

            try:
                association = await self._repo.update_association(
                    ha_id,
                    name=name.strip() if name is not None else None,
                    address=address.strip() if address is not None else None,
                    registration_num=registration_num,
                )
            except DuplicateRecordError as e:
                raise ConflictError(
                    "House association with this registration number already exists",
                    code="REGISTRATION_NUM_TAKEN",
                    cause=e,
                ) from e

        if association is None:
            raise NotFoundError("House association not found")

        logger.info(f"House association updated: {ha_id} by {user_id}")
        return association

    async def delete(self, ha_id: UUID, user_id: UUID) -> None:
        """Delete an association and its memberships. Manager only.

        Raises:
            NotFoundError: If it does not exist.
            ForbiddenError: If the user is not its manager.
        """
        with store_errors("delete house association"):
            await self._validator.require_manager(ha_id, user_id, action="delete")
            deleted = await self._repo.delete_association(ha_id)

        if not deleted:
            raise NotFoundError("House association not found")

        logger.info(f"House association deleted: {ha_id} by {user_id}")

    async def add_member(self, ha_id: UUID, national_id: str, manager_id: UUID) -> Membership:
        """Add a registered user to an association by national id."""
        with store_errors("add member to house association"):
            return await self._validator.add_member_by_national_id(ha_id, national_id, manager_id)

    async def remove_member(self, ha_id: UUID, user_id: UUID, manager_id: UUID) -> None:
        """Remove a member from an association."""
        with store_errors("remove member from house association"):
            await self._validator.remove_member(ha_id, user_id, manager_id)

    async def list_members(
        self,
        ha_id: UUID,
        user_id: UUID,
        role: UserRole,
        *,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[Sequence[Membership], Pagination]:
        """List an association's members, ordered by first name.

        Raises:
            NotFoundError: If the association does not exist.
            ForbiddenError: If the user has no access.
        """
        with store_errors("list house association members"):
            await self._validator.require_access(ha_id, user_id, role)
            total = await self._repo.count_members(ha_id)
            pagination = Pagination(page=page, limit=limit, total=total)
            members = await self._repo.list_members(
                ha_id, limit=limit, offset=pagination.offset
            )

        return members, pagination
