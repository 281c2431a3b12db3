"""Tests for the SQLAlchemy repositories against SQLite."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.enums import UserRole
from src.db.exceptions import DuplicateRecordError
from src.db.models import HouseAssociation, User
from src.db.repositories import HouseAssociationRepository, UserRepository


@pytest_asyncio.fixture
async def manager(seed_user: Callable[..., Awaitable[User]]) -> User:
    return await seed_user(email="manager@example.com", role=UserRole.MANAGER)


@pytest_asyncio.fixture
async def association(
    association_repository: HouseAssociationRepository, manager: User
) -> HouseAssociation:
    return await association_repository.create_association(
        id=uuid4(),
        name="Laugavegur 1",
        address="Laugavegur 1, 101 Reykjavík",
        registration_num="123-456",
        manager_id=manager.id,
    )


class TestUserRepository:
    @pytest.mark.asyncio
    async def test_email_is_stored_lower_case(self, user_repository: UserRepository) -> None:
        user = await user_repository.create_user(
            id=uuid4(),
            email=" Anna@Example.COM ",
            password_hash="hash",
            first_name="Anna",
            last_name="A",
            role=UserRole.MEMBER,
        )

        assert user.email == "anna@example.com"
        assert await user_repository.get_user_by_email("ANNA@example.com") is user
        assert await user_repository.email_exists("anna@example.com")
        assert not await user_repository.email_exists("anna@example.com", exclude_user_id=user.id)

    @pytest.mark.asyncio
    async def test_duplicate_email(
        self,
        user_repository: UserRepository,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        await seed_user(email="anna@example.com")

        with pytest.raises(DuplicateRecordError) as exc_info:
            await seed_user(email="anna@example.com")

        assert isinstance(exc_info.value.cause, IntegrityError)
        # The failed insert only rolled back its SAVEPOINT
        other = await seed_user(email="birna@example.com")
        assert await user_repository.get_user(other.id) is other

    @pytest.mark.asyncio
    async def test_duplicate_national_id_on_update(
        self,
        user_repository: UserRepository,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        await seed_user(email="a@example.com", national_id="0101302989")
        other = await seed_user(email="b@example.com")

        with pytest.raises(DuplicateRecordError):
            await user_repository.update_user(other.id, national_id="0101302989")

    @pytest.mark.asyncio
    async def test_update_missing_user(self, user_repository: UserRepository) -> None:
        assert await user_repository.update_user(uuid4(), first_name="Anna") is None
        assert not await user_repository.delete_user(uuid4())

    @pytest.mark.asyncio
    async def test_count_users_by_role(
        self,
        user_repository: UserRepository,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        await seed_user(email="a@example.com")
        await seed_user(email="b@example.com")

        assert await user_repository.count_users_by_role() == {UserRole.MEMBER: 2}
        assert await user_repository.count_users(role=UserRole.MANAGER) == 0


class TestHouseAssociationRepository:
    @pytest.mark.asyncio
    async def test_create_loads_manager(
        self, association: HouseAssociation, manager: User
    ) -> None:
        assert association.manager is manager

    @pytest.mark.asyncio
    async def test_duplicate_registration_num(
        self,
        association_repository: HouseAssociationRepository,
        association: HouseAssociation,
        manager: User,
    ) -> None:
        with pytest.raises(DuplicateRecordError):
            await association_repository.create_association(
                id=uuid4(),
                name="Other",
                address="Other street 2",
                registration_num=association.registration_num,
                manager_id=manager.id,
            )

        assert await association_repository.count_associations() == 1

    @pytest.mark.asyncio
    async def test_duplicate_membership(
        self,
        association_repository: HouseAssociationRepository,
        association: HouseAssociation,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        member = await seed_user(email="member@example.com")
        await association_repository.create_membership(
            id=uuid4(), user_id=member.id, association_id=association.id
        )

        with pytest.raises(DuplicateRecordError):
            await association_repository.create_membership(
                id=uuid4(), user_id=member.id, association_id=association.id
            )

        assert await association_repository.count_members(association.id) == 1

    @pytest.mark.asyncio
    async def test_association_with_member_filters_roster(
        self,
        association_repository: HouseAssociationRepository,
        association: HouseAssociation,
        manager: User,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        anna = await seed_user(email="anna@example.com")
        birna = await seed_user(email="birna@example.com")
        for user in (anna, birna):
            await association_repository.create_membership(
                id=uuid4(), user_id=user.id, association_id=association.id
            )

        for_anna = await association_repository.get_association_with_member(
            association.id, anna.id
        )
        assert [m.user_id for m in for_anna.members] == [anna.id]

        for_manager = await association_repository.get_association_with_member(
            association.id, manager.id
        )
        assert for_manager.members == []
        assert for_manager.manager_id == manager.id

        assert await association_repository.get_association_with_member(uuid4(), anna.id) is None

    @pytest.mark.asyncio
    async def test_list_members_sorted_by_name(
        self,
        association_repository: HouseAssociationRepository,
        association: HouseAssociation,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        for email, first_name in (("b@example.com", "Birna"), ("a@example.com", "Anna")):
            user = await seed_user(email=email, first_name=first_name)
            await association_repository.create_membership(
                id=uuid4(), user_id=user.id, association_id=association.id
            )

        members = await association_repository.list_members(association.id, limit=1, offset=1)

        assert [m.user.first_name for m in members] == ["Birna"]


class TestForeignKeys:
    """ON DELETE rules are enforced by the database itself."""

    @pytest.mark.asyncio
    async def test_deleting_association_cascades_to_memberships(
        self,
        session: AsyncSession,
        association_repository: HouseAssociationRepository,
        association: HouseAssociation,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        member = await seed_user(email="member@example.com")
        await association_repository.create_membership(
            id=uuid4(), user_id=member.id, association_id=association.id
        )

        await session.execute(delete(HouseAssociation).where(HouseAssociation.id == association.id))

        assert await association_repository.count_members(association.id) == 0

    @pytest.mark.asyncio
    async def test_manager_delete_is_restricted(
        self,
        session: AsyncSession,
        association: HouseAssociation,
        manager: User,
    ) -> None:
        with pytest.raises(IntegrityError):
            async with session.begin_nested():
                await session.execute(delete(User).where(User.id == manager.id))

        assert await UserRepository(session).count_managed_associations(manager.id) == 1
