"""Repository for house association and membership operations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload, with_loader_criteria

from src.db.exceptions import DuplicateRecordError, constraint_name_from
from src.db.models import HouseAssociation, Membership, User

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Select


class HouseAssociationRepository:
    """Repository for house association database operations.

    Provides data access methods for HouseAssociation and Membership
    models. Unique-constraint violations surface as
    ``DuplicateRecordError``; the session stays usable afterwards.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self._session = session

    # -------------------------------------------------------------------------
    # HouseAssociation operations
    # -------------------------------------------------------------------------

    async def create_association(
        self,
        *,
        id: UUID,
        name: str,
        address: str,
        registration_num: str,
        manager_id: UUID,
    ) -> HouseAssociation:
        """Create a new house association.

        Args:
            id: Association ID.
            name: Display name.
            address: Street address.
            registration_num: Registration code (must be unique).
            manager_id: Managing user.

        Returns:
            Created HouseAssociation instance.

        Raises:
            DuplicateRecordError: If the registration code is taken.
        """
        association = HouseAssociation(
            id=id,
            name=name,
            address=address,
            registration_num=registration_num,
            manager_id=manager_id,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(association)
                await self._session.flush()
        except IntegrityError as e:
            raise DuplicateRecordError(
                "House association with this registration number already exists",
                constraint=constraint_name_from(e),
                cause=e,
            ) from e
        await self._session.refresh(association, attribute_names=["manager"])
        return association

    async def get_association(self, association_id: UUID) -> HouseAssociation | None:
        """Get a house association by ID.

        Args:
            association_id: Association ID.

        Returns:
            HouseAssociation if found, None otherwise.
        """
        return await self._session.get(HouseAssociation, association_id)

    async def get_association_with_member(
        self,
        association_id: UUID,
        user_id: UUID,
    ) -> HouseAssociation | None:
        """Get an association with its roster filtered to one user.

        ``members`` holds at most the single membership of ``user_id``.

        Args:
            association_id: Association ID.
            user_id: User whose membership to load.

        Returns:
            HouseAssociation if found, None otherwise.
        """
        result = await self._session.execute(
            select(HouseAssociation)
            .where(HouseAssociation.id == association_id)
            .options(
                selectinload(HouseAssociation.members),
                with_loader_criteria(Membership, Membership.user_id == user_id),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_association_by_registration_num(
        self,
        registration_num: str,
        exclude_id: UUID | None = None,
    ) -> HouseAssociation | None:
        """Find an association holding a registration code.

        Args:
            registration_num: Registration code.
            exclude_id: Association to ignore (the one being updated).

        Returns:
            HouseAssociation if found, None otherwise.
        """
        query = select(HouseAssociation).where(HouseAssociation.registration_num == registration_num)
        if exclude_id is not None:
            query = query.where(HouseAssociation.id != exclude_id)
        result = await self._session.execute(query.limit(1))
        return result.scalars().first()

    async def list_associations(
        self,
        *,
        manager_id: UUID | None = None,
        member_id: UUID | None = None,
        search: str | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Sequence[HouseAssociation]:
        """List associations, newest first.

        Args:
            manager_id: Only associations managed by this user.
            member_id: Only associations this user belongs to.
            search: Case-insensitive match on name, address or registration code.
            limit: Maximum results to return.
            offset: Number of results to skip.

        Returns:
            List of HouseAssociation instances.
        """
        query = self._filtered(select(HouseAssociation), manager_id, member_id, search)
        result = await self._session.execute(
            query.order_by(HouseAssociation.created_at.desc()).limit(limit).offset(offset)
        )
        return result.scalars().unique().all()

    async def count_associations(
        self,
        *,
        manager_id: UUID | None = None,
        member_id: UUID | None = None,
        search: str | None = None,
    ) -> int:
        """Count associations matching the same filters as ``list_associations``."""
        query = self._filtered(
            select(func.count()).select_from(HouseAssociation), manager_id, member_id, search
        )
        result = await self._session.execute(query)
        return result.scalar() or 0

    async def update_association(
        self,
        association_id: UUID,
        *,
        name: str | None = None,
        address: str | None = None,
        registration_num: str | None = None,
    ) -> HouseAssociation | None:
        """Update association fields. ``None`` leaves a field unchanged.

        Args:
            association_id: Association to update.
            name: New name (optional).
            address: New address (optional).
            registration_num: New registration code (optional).

        Returns:
            Updated HouseAssociation if found, None otherwise.

        Raises:
            DuplicateRecordError: If the new registration code is taken.
        """
        association = await self.get_association(association_id)
        if association is None:
            return None

        if name is not None:
            association.name = name
        if address is not None:
            association.address = address
        if registration_num is not None:
            association.registration_num = registration_num

        association.updated_at = datetime.now(timezone.utc)
        try:
            async with self._session.begin_nested():
                await self._session.flush()
        except IntegrityError as e:
            raise DuplicateRecordError(
                "House association with this registration number already exists",
                constraint=constraint_name_from(e),
                cause=e,
            ) from e
        return association

    async def delete_association(self, association_id: UUID) -> bool:
        """Delete an association. Its memberships cascade.

        Args:
            association_id: Association to delete.

        Returns:
            True if deleted, False if not found.
        """
        association = await self.get_association(association_id)
        if association is None:
            return False

        await self._session.delete(association)
        await self._session.flush()
        return True

    # -------------------------------------------------------------------------
    # Membership operations
    # -------------------------------------------------------------------------

    async def create_membership(
        self,
        *,
        id: UUID,
        user_id: UUID,
        association_id: UUID,
    ) -> Membership:
        """Create a membership row.

        Runs in a SAVEPOINT so a unique violation from a concurrent insert
        leaves the outer transaction intact.

        Args:
            id: Membership ID.
            user_id: Member.
            association_id: Association joined.

        Returns:
            Created Membership with its user loaded.

        Raises:
            DuplicateRecordError: If the user is already a member.
        """
        membership = Membership(
            id=id,
            user_id=user_id,
            house_association_id=association_id,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(membership)
                await self._session.flush()
        except IntegrityError as e:
            raise DuplicateRecordError(
                "User is already a member of this house association",
                constraint=constraint_name_from(e),
                cause=e,
            ) from e
        await self._session.refresh(membership, attribute_names=["user"])
        return membership

    async def get_membership(self, association_id: UUID, user_id: UUID) -> Membership | None:
        """Get the membership of a user in an association.

        Args:
            association_id: Association ID.
            user_id: User ID.

        Returns:
            Membership if found, None otherwise.
        """
        result = await self._session.execute(
            select(Membership).where(
                Membership.house_association_id == association_id,
                Membership.user_id == user_id,
            )
        )
        return result.scalars().first()

    async def delete_membership(self, association_id: UUID, user_id: UUID) -> bool:
        """Delete a membership.

        Args:
            association_id: Association ID.
            user_id: User ID.

        Returns:
            True if deleted, False if not found.
        """
        membership = await self.get_membership(association_id, user_id)
        if membership is None:
            return False

        await self._session.delete(membership)
        await self._session.flush()
        return True

    async def list_members(
        self,
        association_id: UUID,
        *,
        limit: int = 10,
        offset: int = 0,
    ) -> Sequence[Membership]:
        """List memberships of an association ordered by member first name.

        Args:
            association_id: Association ID.
            limit: Maximum results to return.
            offset: Number of results to skip.

        Returns:
            List of Membership with users loaded.
        """
        result = await self._session.execute(
            select(Membership)
            .join(Membership.user)
            .where(Membership.house_association_id == association_id)
            .order_by(User.first_name, User.last_name)
            .limit(limit)
            .offset(offset)
        )
        return result.scalars().unique().all()

    async def count_members(self, association_id: UUID) -> int:
        """Count memberships of an association.

        Args:
            association_id: Association ID.

        Returns:
            Member count.
        """
        result = await self._session.execute(
            select(func.count())
            .select_from(Membership)
            .where(Membership.house_association_id == association_id)
        )
        return result.scalar() or 0

    @staticmethod
    def _filtered(
        query: Select,
        manager_id: UUID | None,
        member_id: UUID | None,
        search: str | None,
    ) -> Select:
        if manager_id is not None:
            query = query.where(HouseAssociation.manager_id == manager_id)
        if member_id is not None:
            query = query.where(
                HouseAssociation.members.any(Membership.user_id == member_id)
            )
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    HouseAssociation.name.ilike(pattern),
                    HouseAssociation.address.ilike(pattern),
                    HouseAssociation.registration_num.ilike(pattern),
                )
            )
        return query
