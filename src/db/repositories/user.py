"""Repository for user-related database operations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.enums import UserRole
from src.db.exceptions import DuplicateRecordError, constraint_name_from
from src.db.models import HouseAssociation, Membership, User

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Select


class UserRepository:
    """Repository for user database operations.

    Provides data access methods for the User model. All methods are
    async and use the provided session for transaction management.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self._session = session

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: UUID) -> User | None:
        """Get user by ID.

        Args:
            user_id: User ID.

        Returns:
            User if found, None otherwise.
        """
        return await self._session.get(User, user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email.

        Args:
            email: User email (compared lower-cased).

        Returns:
            User if found, None otherwise.
        """
        result = await self._session.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_national_id(self, national_id: str) -> User | None:
        """Get user by national id.

        Args:
            national_id: Normalised 10-digit national id.

        Returns:
            User if found, None otherwise.
        """
        result = await self._session.execute(select(User).where(User.national_id == national_id))
        return result.scalar_one_or_none()

    async def email_exists(self, email: str, exclude_user_id: UUID | None = None) -> bool:
        """Check if email is already registered.

        Args:
            email: Email to check.
            exclude_user_id: Optional user ID to exclude from check.

        Returns:
            True if email exists, False otherwise.
        """
        query = select(func.count()).select_from(User).where(User.email == email.strip().lower())
        if exclude_user_id:
            query = query.where(User.id != exclude_user_id)
        result = await self._session.execute(query)
        return (result.scalar() or 0) > 0

    async def national_id_exists(
        self,
        national_id: str,
        exclude_user_id: UUID | None = None,
    ) -> bool:
        """Check if a national id is already in use.

        Args:
            national_id: Normalised national id.
            exclude_user_id: Optional user ID to exclude from check.

        Returns:
            True if taken, False otherwise.
        """
        query = select(func.count()).select_from(User).where(User.national_id == national_id)
        if exclude_user_id:
            query = query.where(User.id != exclude_user_id)
        result = await self._session.execute(query)
        return (result.scalar() or 0) > 0

    async def list_users(
        self,
        *,
        role: UserRole | None = None,
        search: str | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Sequence[User]:
        """List users, newest first.

        Args:
            role: Only users holding this role.
            search: Case-insensitive match on email, first or last name.
            limit: Maximum results to return.
            offset: Number of results to skip.

        Returns:
            List of User instances.
        """
        query = self._filtered(select(User), role, search)
        result = await self._session.execute(
            query.order_by(User.created_at.desc()).limit(limit).offset(offset)
        )
        return result.scalars().all()

    async def count_users(
        self,
        *,
        role: UserRole | None = None,
        search: str | None = None,
    ) -> int:
        """Count users matching the same filters as ``list_users``."""
        query = self._filtered(select(func.count()).select_from(User), role, search)
        result = await self._session.execute(query)
        return result.scalar() or 0

    async def count_users_by_role(self) -> dict[UserRole, int]:
        """Number of users per role. Roles nobody holds are absent."""
        result = await self._session.execute(
            select(User.role, func.count()).group_by(User.role)
        )
        return {UserRole(role): count for role, count in result.all()}

    async def count_users_created_since(self, since: datetime) -> int:
        """Count users registered at or after ``since``."""
        result = await self._session.execute(
            select(func.count()).select_from(User).where(User.created_at >= since)
        )
        return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create_user(
        self,
        *,
        id: UUID,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        national_id: str | None = None,
    ) -> User:
        """Create a new user.

        Args:
            id: User ID.
            email: User email (must be unique).
            password_hash: Hashed password.
            first_name: Given name.
            last_name: Family name.
            role: Global role.
            national_id: Optional national id (must be unique).

        Returns:
            Created User instance.

        Raises:
            DuplicateRecordError: If email or national id is taken.
        """
        user = User(
            id=id,
            email=email.strip().lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=UserRole(role).value,
            national_id=national_id,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(user)
                await self._session.flush()
        except IntegrityError as e:
            raise DuplicateRecordError(
                "User with this email or national id already exists",
                constraint=constraint_name_from(e),
                cause=e,
            ) from e
        return user

    async def update_user(
        self,
        user_id: UUID,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        national_id: str | None = None,
        password_hash: str | None = None,
    ) -> User | None:
        """Update user fields. ``None`` leaves a field unchanged.

        Args:
            user_id: User ID to update.
            first_name: New first name (optional).
            last_name: New last name (optional).
            national_id: New national id (optional).
            password_hash: New password hash (optional).

        Returns:
            Updated User if found, None otherwise.

        Raises:
            DuplicateRecordError: If the new national id is taken.
        """
        user = await self.get_user(user_id)
        if user is None:
            return None

        if first_name is not None:
            user.first_name = first_name
        if last_name is not None:
            user.last_name = last_name
        if national_id is not None:
            user.national_id = national_id
        if password_hash is not None:
            user.password_hash = password_hash

        user.updated_at = datetime.now(timezone.utc)
        try:
            async with self._session.begin_nested():
                await self._session.flush()
        except IntegrityError as e:
            raise DuplicateRecordError(
                "This national id is already in use by another user",
                constraint=constraint_name_from(e),
                cause=e,
            ) from e
        return user

    async def delete_user(self, user_id: UUID) -> bool:
        """Delete a user. Memberships cascade.

        Args:
            user_id: User ID to delete.

        Returns:
            True if deleted, False if not found.
        """
        user = await self.get_user(user_id)
        if user is None:
            return False

        await self._session.delete(user)
        await self._session.flush()
        return True

    # -------------------------------------------------------------------------
    # Association lookups for a user
    # -------------------------------------------------------------------------

    async def count_managed_associations(self, user_id: UUID) -> int:
        """Count house associations managed by a user.

        Args:
            user_id: User ID.

        Returns:
            Number of managed associations.
        """
        result = await self._session.execute(
            select(func.count())
            .select_from(HouseAssociation)
            .where(HouseAssociation.manager_id == user_id)
        )
        return result.scalar() or 0

    async def list_memberships(self, user_id: UUID) -> Sequence[Membership]:
        """List a user's memberships with their associations loaded.

        Args:
            user_id: User ID.

        Returns:
            List of Membership.
        """
        result = await self._session.execute(
            select(Membership)
            .options(selectinload(Membership.house_association))
            .where(Membership.user_id == user_id)
            .order_by(Membership.created_at)
        )
        return result.scalars().unique().all()

    async def list_managed_associations(self, user_id: UUID) -> Sequence[HouseAssociation]:
        """List associations a user manages.

        Args:
            user_id: User ID.

        Returns:
            List of HouseAssociation.
        """
        result = await self._session.execute(
            select(HouseAssociation)
            .where(HouseAssociation.manager_id == user_id)
            .order_by(HouseAssociation.created_at.desc())
        )
        return result.scalars().unique().all()

    @staticmethod
    def _filtered(query: Select, role: UserRole | None, search: str | None) -> Select:
        if role is not None:
            query = query.where(User.role == UserRole(role).value)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    User.email.ilike(pattern),
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                )
            )
        return query
