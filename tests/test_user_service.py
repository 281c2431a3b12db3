"""Tests for user profile service."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from src.api.security import PasswordService
from src.api.services.house_association import HouseAssociationService
from src.api.services.user import UserService
from src.core.enums import UserRole
from src.core.exceptions import (
    AlreadyExistsError,
    ConflictError,
    InternalError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
    WeakPasswordError,
)
from src.db.models import User
from src.db.repositories import HouseAssociationRepository, UserRepository

STRONG_PASSWORD = "Str0ng!Pass"
NEW_PASSWORD = "N3w!Passw0rd"


class TestProfile:
    """Tests for profile reads and updates."""

    @pytest.mark.asyncio
    async def test_get_profile(self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]) -> None:
        user = await seed_user()

        assert await user_service.get_profile(user.id) is user

    @pytest.mark.asyncio
    async def test_get_missing_profile(self, user_service: UserService) -> None:
        with pytest.raises(NotFoundError, match="User not found"):
            await user_service.get_profile(uuid4())

    @pytest.mark.asyncio
    async def test_update_names_only(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        user = await seed_user(national_id="0101302989")

        updated = await user_service.update_profile(user.id, first_name="  Guðrún ")

        assert updated.first_name == "Guðrún"
        assert updated.last_name == "Jónsson"
        assert updated.national_id == "0101302989"

    @pytest.mark.asyncio
    async def test_update_national_id(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        user = await seed_user()

        updated = await user_service.update_profile(user.id, national_id="020202-4040")

        assert updated.national_id == "0202024040"

    @pytest.mark.asyncio
    async def test_keeping_own_national_id_is_allowed(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        user = await seed_user(national_id="0101302989")

        updated = await user_service.update_profile(user.id, national_id="0101302989")

        assert updated.national_id == "0101302989"

    @pytest.mark.asyncio
    async def test_national_id_taken(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        await seed_user(email="a@example.com", national_id="0101302989")
        other = await seed_user(email="b@example.com")

        with pytest.raises(AlreadyExistsError) as exc_info:
            await user_service.update_profile(other.id, national_id="0101302989")

        assert exc_info.value.code == "NATIONAL_ID_TAKEN"

    @pytest.mark.asyncio
    async def test_malformed_national_id(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        user = await seed_user()

        with pytest.raises(ValidationError):
            await user_service.update_profile(user.id, national_id="0113302989")

    @pytest.mark.asyncio
    async def test_update_missing_user(self, user_service: UserService) -> None:
        with pytest.raises(NotFoundError):
            await user_service.update_profile(uuid4(), first_name="Anna")


class TestChangePassword:
    """Tests for password changes."""

    @pytest.mark.asyncio
    async def test_change_password(
        self,
        user_service: UserService,
        password_service: PasswordService,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        user = await seed_user()

        await user_service.change_password(
            user.id, current_password=STRONG_PASSWORD, new_password=NEW_PASSWORD
        )

        assert password_service.verify(user.password_hash, NEW_PASSWORD)
        assert not password_service.verify(user.password_hash, STRONG_PASSWORD)

    @pytest.mark.asyncio
    async def test_wrong_current_password(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        user = await seed_user()

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await user_service.change_password(
                user.id, current_password="Wr0ng!Pass", new_password=NEW_PASSWORD
            )

        assert exc_info.value.code == "INVALID_CURRENT_PASSWORD"

    @pytest.mark.asyncio
    async def test_weak_new_password(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        user = await seed_user()

        with pytest.raises(WeakPasswordError):
            await user_service.change_password(
                user.id, current_password=STRONG_PASSWORD, new_password="password"
            )

    @pytest.mark.asyncio
    async def test_unchanged_password(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        user = await seed_user()

        with pytest.raises(ValidationError) as exc_info:
            await user_service.change_password(
                user.id, current_password=STRONG_PASSWORD, new_password=STRONG_PASSWORD
            )

        assert exc_info.value.code == "PASSWORD_UNCHANGED"


class TestDeleteAccount:
    """Tests for account deletion."""

    @pytest.mark.asyncio
    async def test_delete_member(
        self,
        user_service: UserService,
        house_association_service: HouseAssociationService,
        user_repository: UserRepository,
        association_repository: HouseAssociationRepository,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        manager = await seed_user(email="m@example.com", role=UserRole.MANAGER)
        member = await seed_user(email="a@example.com", national_id="0101302989")
        association = await house_association_service.create(
            name="Blokk", address="Gata 1", registration_num="111", manager_id=manager.id
        )
        await house_association_service.add_member(association.id, "0101302989", manager.id)

        await user_service.delete_account(member.id)

        assert await user_repository.get_user(member.id) is None
        assert await association_repository.count_members(association.id) == 0
        assert await association_repository.get_membership(association.id, member.id) is None

    @pytest.mark.asyncio
    async def test_manager_with_associations_cannot_delete(
        self,
        user_service: UserService,
        house_association_service: HouseAssociationService,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        manager = await seed_user(email="m@example.com", role=UserRole.MANAGER)
        await house_association_service.create(
            name="Blokk", address="Gata 1", registration_num="111", manager_id=manager.id
        )

        with pytest.raises(ConflictError) as exc_info:
            await user_service.delete_account(manager.id)

        assert exc_info.value.code == "USER_MANAGES_ASSOCIATIONS"

    @pytest.mark.asyncio
    async def test_delete_missing_user(self, user_service: UserService) -> None:
        with pytest.raises(NotFoundError):
            await user_service.delete_account(uuid4())

    @pytest.mark.asyncio
    async def test_memberships_and_managed(
        self,
        user_service: UserService,
        house_association_service: HouseAssociationService,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        manager = await seed_user(email="m@example.com", role=UserRole.MANAGER)
        member = await seed_user(email="a@example.com", national_id="0101302989")
        association = await house_association_service.create(
            name="Blokk", address="Gata 1", registration_num="111", manager_id=manager.id
        )
        await house_association_service.add_member(association.id, "0101302989", manager.id)

        memberships = await user_service.list_memberships(member.id)
        managed = await user_service.list_managed(manager.id)

        assert [m.house_association_id for m in memberships] == [association.id]
        assert [a.id for a in managed] == [association.id]
        assert list(await user_service.list_managed(member.id)) == []

    @pytest.mark.asyncio
    async def test_manager_deletes_member(
        self,
        user_service: UserService,
        user_repository: UserRepository,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        manager = await seed_user(email="m@example.com", role=UserRole.MANAGER)
        member = await seed_user(email="a@example.com")

        await user_service.delete_user(member.id, deleted_by=manager.id)

        assert await user_repository.get_user(member.id) is None
        assert await user_repository.get_user(manager.id) is manager


class TestUserDirectory:
    """Tests for the manager-facing user listing and statistics."""

    @pytest.mark.asyncio
    async def test_list_users_newest_first(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        first = await seed_user(email="a@example.com")
        second = await seed_user(email="b@example.com")

        users, pagination = await user_service.list_users()

        assert [u.id for u in users] == [second.id, first.id]
        assert pagination.total == 2
        assert not pagination.has_next

    @pytest.mark.asyncio
    async def test_list_users_by_role(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        manager = await seed_user(email="m@example.com", role=UserRole.MANAGER)
        await seed_user(email="a@example.com")

        users, pagination = await user_service.list_users(role=UserRole.MANAGER)

        assert [u.id for u in users] == [manager.id]
        assert pagination.total == 1

    @pytest.mark.asyncio
    async def test_list_users_search(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        anna = await seed_user(email="anna@example.com", first_name="Anna")
        birna = await seed_user(email="b@example.com", first_name="Birna", last_name="Annasdóttir")
        await seed_user(email="c@example.com", first_name="Sigga", last_name="Sigurðar")

        by_name, _ = await user_service.list_users(search="ANNA")
        by_email, _ = await user_service.list_users(search="b@example")

        assert {u.id for u in by_name} == {anna.id, birna.id}
        assert [u.id for u in by_email] == [birna.id]

    @pytest.mark.asyncio
    async def test_list_users_pagination(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        for n in range(5):
            await seed_user(email=f"user{n}@example.com")

        users, pagination = await user_service.list_users(page=2, limit=2)

        assert [u.email for u in users] == ["user2@example.com", "user1@example.com"]
        assert pagination.total_pages == 3
        assert pagination.has_next and pagination.has_prev

    @pytest.mark.asyncio
    async def test_statistics(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        await seed_user(email="m@example.com", role=UserRole.MANAGER)
        await seed_user(email="a@example.com")
        await seed_user(email="b@example.com")

        stats = await user_service.statistics()

        assert stats.total_users == 3
        assert stats.users_by_role == {UserRole.MEMBER: 2, UserRole.MANAGER: 1}
        assert stats.recent_registrations == 3

    @pytest.mark.asyncio
    async def test_statistics_lists_every_role(self, user_service: UserService) -> None:
        stats = await user_service.statistics()

        assert stats.total_users == 0
        assert stats.users_by_role == {role: 0 for role in UserRole}

    @pytest.mark.asyncio
    async def test_old_registrations_are_not_recent(
        self, user_service: UserService, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        await seed_user()

        stats = await user_service.statistics(
            now=datetime.now(timezone.utc) + timedelta(days=8)
        )

        assert stats.total_users == 1
        assert stats.recent_registrations == 0


class TestStoreFailures:
    """Database failures surface as InternalError."""

    @pytest.fixture
    def service(
        self, mock_user_repository: AsyncMock, password_service: PasswordService
    ) -> UserService:
        mock_user_repository.get_user.side_effect = OperationalError(
            "SELECT", {}, Exception("connection refused")
        )
        mock_user_repository.count_users.side_effect = OperationalError(
            "SELECT", {}, Exception("connection refused")
        )
        return UserService(mock_user_repository, password_service)

    @pytest.mark.asyncio
    async def test_get_profile(self, service: UserService) -> None:
        with pytest.raises(InternalError) as exc_info:
            await service.get_profile(uuid4())

        assert exc_info.value.message == "Failed to fetch user"

    @pytest.mark.asyncio
    async def test_delete_user(self, service: UserService) -> None:
        with pytest.raises(InternalError):
            await service.delete_user(uuid4(), deleted_by=uuid4())

    @pytest.mark.asyncio
    async def test_list_users(self, service: UserService) -> None:
        with pytest.raises(InternalError):
            await service.list_users()

    @pytest.mark.asyncio
    async def test_statistics(self, service: UserService) -> None:
        with pytest.raises(InternalError):
            await service.statistics()
