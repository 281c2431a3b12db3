"""User profile service for account management."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from uuid import UUID

from src.api.security import (
    PasswordService,
    check_password_strength,
    is_valid_national_id,
    normalize_national_id,
)
from src.api.services.common import Pagination, store_errors
from src.core.enums import UserRole
from src.core.exceptions import (
    AlreadyExistsError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
    WeakPasswordError,
)
from src.db.exceptions import DuplicateRecordError
from src.db.repositories import UserRepository

if TYPE_CHECKING:
    from src.db.models import HouseAssociation, Membership, User

logger = logging.getLogger(__name__)

RECENT_REGISTRATION_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class UserStatistics:
    """Registration counts for the manager dashboard."""

    total_users: int
    users_by_role: dict[UserRole, int]
    recent_registrations: int


class UserService:
    """User profile management service.

    Handles profile viewing and updating, password changes, account
    deletion and the manager-facing user directory.
    """

    def __init__(
        self,
        repository: UserRepository,
        password_service: PasswordService,
    ) -> None:
        """Initialize user service.

        Args:
            repository: User repository.
            password_service: Password hashing service.
        """
        self._repo = repository
        self._password = password_service

    async def get_profile(self, user_id: UUID) -> User:
        """Get user profile.

        Raises:
            NotFoundError: If user not found.
        """
        with store_errors("fetch user"):
            user = await self._repo.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_profile(
        self,
        user_id: UUID,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        national_id: str | None = None,
    ) -> User:
        """Update user profile. ``None`` leaves a field unchanged.

        Args:
            user_id: User ID.
            first_name: New first name (optional).
            last_name: New last name (optional).
            national_id: New national id (optional).

        Returns:
            Updated User.

        Raises:
            NotFoundError: If user not found.
            ValidationError: If the national id is malformed.
            AlreadyExistsError: If the national id belongs to another user.
        """
        cleaned_national_id: str | None = None
        if national_id:
            if not is_valid_national_id(national_id):
                raise ValidationError(
                    "Invalid national id format",
                    code="INVALID_NATIONAL_ID",
                    details={"field": "nationalId"},
                )
            cleaned_national_id = normalize_national_id(national_id)

        with store_errors("update user profile"):
            if cleaned_national_id and await self._repo.national_id_exists(
                cleaned_national_id, exclude_user_id=user_id
            ):
                raise AlreadyExistsError(
                    "This national id is already in use by another user",
                    code="NATIONAL_ID_TAKEN",
                )

            try:
                user = await self._repo.update_user(
                    user_id,
                    first_name=first_name.strip() if first_name is not None else None,
                    last_name=last_name.strip() if last_name is not None else None,
                    national_id=cleaned_national_id,
                )
            except DuplicateRecordError as e:
                raise AlreadyExistsError(
                    "This national id is already in use by another user",
                    code="NATIONAL_ID_TAKEN",
                    cause=e,
                ) from e

        if user is None:
            raise NotFoundError("User not found")

        logger.info(f"Profile updated for user {user_id}")
        return user

    async def change_password(
        self,
        user_id: UUID,
        *,
        current_password: str,
        new_password: str,
    ) -> None:
        """Change user password.

        Args:
            user_id: User ID.
            current_password: Current password for verification.
            new_password: New password.

        Raises:
            NotFoundError: If user not found.
            InvalidCredentialsError: If the current password is wrong.
            WeakPasswordError: If the new password fails the policy.
            ValidationError: If the new password equals the current one.
        """
        with store_errors("change password"):
            user = await self._repo.get_user(user_id)
            if user is None:
                raise NotFoundError("User not found")

            if not self._password.verify(user.password_hash, current_password):
                raise InvalidCredentialsError(
                    "Current password is incorrect", code="INVALID_CURRENT_PASSWORD"
                )

            password_errors = check_password_strength(new_password)
            if password_errors:
                raise WeakPasswordError(password_errors)

            if new_password == current_password:
                raise ValidationError(
                    "New password must be different from current password",
                    code="PASSWORD_UNCHANGED",
                )

            await self._repo.update_user(user_id, password_hash=self._password.hash(new_password))

        logger.info(f"Password changed for user {user_id}")

    async def delete_user(self, user_id: UUID, *, deleted_by: UUID) -> None:
        """Delete a user account and its memberships.

        Who may delete whom is decided by the route guard; this only
        enforces that managers hand over their associations first.

        Raises:
            NotFoundError: If user not found.
            ConflictError: If the user still manages a house association.
        """
        with store_errors("delete user"):
            if await self._repo.get_user(user_id) is None:
                raise NotFoundError("User not found")

            if await self._repo.count_managed_associations(user_id) > 0:
                raise ConflictError(
                    "Cannot delete user who is managing house associations. "
                    "Transfer management first.",
                    code="USER_MANAGES_ASSOCIATIONS",
                )

            await self._repo.delete_user(user_id)

        if deleted_by == user_id:
            logger.info(f"User account deleted: {user_id}")
        else:
            logger.info(f"User account {user_id} deleted by manager {deleted_by}")

    async def delete_account(self, user_id: UUID) -> None:
        """Delete the caller's own account."""
        await self.delete_user(user_id, deleted_by=user_id)

    async def list_users(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        role: UserRole | None = None,
        search: str | None = None,
    ) -> tuple[Sequence[User], Pagination]:
        """List registered users, newest first.

        Args:
            page: 1-based page number.
            limit: Page size.
            role: Only users holding this role.
            search: Case-insensitive match on email, first or last name.

        Returns:
            Tuple of (users, pagination).
        """
        with store_errors("list users"):
            total = await self._repo.count_users(role=role, search=search or None)
            pagination = Pagination(page=page, limit=limit, total=total)
            users = await self._repo.list_users(
                role=role, search=search or None, limit=limit, offset=pagination.offset
            )

        return users, pagination

    async def statistics(self, *, now: datetime | None = None) -> UserStatistics:
        """Count users overall, per role and registered in the last seven days.

        Every role appears in ``users_by_role``, with zero when nobody holds it.
        """
        now = now or datetime.now(timezone.utc)

        with store_errors("compute user statistics"):
            total = await self._repo.count_users()
            by_role = await self._repo.count_users_by_role()
            recent = await self._repo.count_users_created_since(now - RECENT_REGISTRATION_WINDOW)

        return UserStatistics(
            total_users=total,
            users_by_role={role: by_role.get(role, 0) for role in UserRole},
            recent_registrations=recent,
        )

    async def list_memberships(self, user_id: UUID) -> Sequence[Membership]:
        """List the associations a user belongs to."""
        with store_errors("list memberships"):
            return await self._repo.list_memberships(user_id)

    async def list_managed(self, user_id: UUID) -> Sequence[HouseAssociation]:
        """List the associations a user manages."""
        with store_errors("list managed house associations"):
            return await self._repo.list_managed_associations(user_id)
