"""Tests for house association management service."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from src.api.services.common import Pagination
from src.api.services.house_association import HouseAssociationService
from src.core.enums import UserRole
from src.core.exceptions import ConflictError, ForbiddenError, InternalError, NotFoundError
from src.db.models import User
from src.db.repositories import HouseAssociationRepository


@pytest_asyncio.fixture
async def manager(seed_user: Callable[..., Awaitable[User]]) -> User:
    return await seed_user(email="manager@example.com", role=UserRole.MANAGER)


@pytest_asyncio.fixture
async def other_manager(seed_user: Callable[..., Awaitable[User]]) -> User:
    return await seed_user(email="other@example.com", role=UserRole.MANAGER)


@pytest.fixture
def create(
    house_association_service: HouseAssociationService, manager: User
) -> Callable:
    async def factory(registration_num: str, name: str = "Húsfélag", manager_id=None):
        return await house_association_service.create(
            name=name,
            address=f"{name} street 1",
            registration_num=registration_num,
            manager_id=manager_id or manager.id,
        )

    return factory


class TestPagination:
    def test_pages(self) -> None:
        pagination = Pagination(page=2, limit=10, total=25)

        assert pagination.total_pages == 3
        assert pagination.offset == 10
        assert pagination.has_next
        assert pagination.has_prev

    def test_empty(self) -> None:
        pagination = Pagination(page=1, limit=10, total=0)

        assert pagination.total_pages == 0
        assert not pagination.has_next
        assert not pagination.has_prev


class TestCreate:
    """Tests for association creation."""

    @pytest.mark.asyncio
    async def test_create(self, create: Callable, manager: User) -> None:
        association = await create("111-111", name="  Laugavegur  ")

        assert association.name == "Laugavegur"
        assert association.manager_id == manager.id
        assert association.registration_num == "111-111"

    @pytest.mark.asyncio
    async def test_member_cannot_create(
        self, create: Callable, seed_user: Callable[..., Awaitable[User]]
    ) -> None:
        member = await seed_user(email="member@example.com")

        with pytest.raises(ForbiddenError):
            await create("111-111", manager_id=member.id)

    @pytest.mark.asyncio
    async def test_duplicate_registration_num(self, create: Callable) -> None:
        await create("111-111")

        with pytest.raises(ConflictError) as exc_info:
            await create("111-111", name="Other")

        assert exc_info.value.code == "REGISTRATION_NUM_TAKEN"

    @pytest.mark.asyncio
    async def test_store_failure_is_internal(
        self, mock_association_repository: AsyncMock, mock_user_repository: AsyncMock
    ) -> None:
        mock_user_repository.get_user.side_effect = OperationalError(
            "SELECT 1", {}, Exception("connection lost")
        )
        service = HouseAssociationService(mock_association_repository, mock_user_repository)

        with pytest.raises(InternalError):
            await service.create(
                name="X", address="Y", registration_num="1", manager_id=uuid4()
            )


class TestReadAndList:
    """Tests for reading and listing associations."""

    @pytest.mark.asyncio
    async def test_get_as_manager(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        manager: User,
    ) -> None:
        association = await create("111-111")

        fetched = await house_association_service.get(association.id, manager.id, UserRole.MANAGER)

        assert fetched is association

    @pytest.mark.asyncio
    async def test_get_as_other_manager_forbidden(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        other_manager: User,
    ) -> None:
        association = await create("111-111")

        with pytest.raises(ForbiddenError):
            await house_association_service.get(association.id, other_manager.id, UserRole.MANAGER)

    @pytest.mark.asyncio
    async def test_get_missing(
        self, house_association_service: HouseAssociationService, manager: User
    ) -> None:
        with pytest.raises(NotFoundError):
            await house_association_service.get(uuid4(), manager.id, UserRole.MANAGER)

    @pytest.mark.asyncio
    async def test_list_is_scoped_by_role(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        manager: User,
        other_manager: User,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        mine = await create("111-111", name="Mine")
        await create("222-222", name="Theirs", manager_id=other_manager.id)
        member = await seed_user(email="member@example.com", national_id="0101302989")
        await house_association_service.add_member(mine.id, "0101302989", manager.id)

        managed, _ = await house_association_service.list(manager.id, UserRole.MANAGER)
        joined, _ = await house_association_service.list(member.id, UserRole.MEMBER)
        outsider, pagination = await house_association_service.list(uuid4(), UserRole.MEMBER)

        assert [a.id for a in managed] == [mine.id]
        assert [a.id for a in joined] == [mine.id]
        assert list(outsider) == []
        assert pagination.total == 0

    @pytest.mark.asyncio
    async def test_list_search_and_pagination(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        manager: User,
    ) -> None:
        for n in range(5):
            await create(f"100-00{n}", name=f"Blokk {n}")
        await create("200-000", name="Raðhús")

        page, pagination = await house_association_service.list(
            manager.id, UserRole.MANAGER, page=2, limit=2, search="blokk"
        )

        assert pagination.total == 5
        assert pagination.total_pages == 3
        assert pagination.has_next and pagination.has_prev
        # newest first
        assert [a.name for a in page] == ["Blokk 2", "Blokk 1"]


class TestUpdateAndDelete:
    """Tests for manager-only mutations."""

    @pytest.mark.asyncio
    async def test_update(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        manager: User,
    ) -> None:
        association = await create("111-111")

        updated = await house_association_service.update(
            association.id, manager.id, name=" New name ", registration_num="111-111"
        )

        assert updated.name == "New name"
        assert updated.registration_num == "111-111"

    @pytest.mark.asyncio
    async def test_update_to_taken_code(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        manager: User,
    ) -> None:
        association = await create("111-111")
        await create("222-222", name="Other")

        with pytest.raises(ConflictError):
            await house_association_service.update(
                association.id, manager.id, registration_num="222-222"
            )

    @pytest.mark.asyncio
    async def test_update_by_other_manager(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        other_manager: User,
    ) -> None:
        association = await create("111-111")

        with pytest.raises(ForbiddenError, match="Only the manager can update"):
            await house_association_service.update(association.id, other_manager.id, name="X")

    @pytest.mark.asyncio
    async def test_delete_removes_memberships(
        self,
        house_association_service: HouseAssociationService,
        association_repository: HouseAssociationRepository,
        create: Callable,
        manager: User,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        association = await create("111-111")
        await seed_user(email="member@example.com", national_id="0101302989")
        await house_association_service.add_member(association.id, "0101302989", manager.id)

        await house_association_service.delete(association.id, manager.id)

        assert await association_repository.get_association(association.id) is None
        assert await association_repository.count_members(association.id) == 0
        with pytest.raises(NotFoundError):
            await house_association_service.delete(association.id, manager.id)

    @pytest.mark.asyncio
    async def test_delete_by_other_manager(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        other_manager: User,
    ) -> None:
        association = await create("111-111")

        with pytest.raises(ForbiddenError):
            await house_association_service.delete(association.id, other_manager.id)


class TestMembers:
    """Tests for roster management."""

    @pytest.mark.asyncio
    async def test_list_members_sorted_by_name(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        manager: User,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        association = await create("111-111")
        await seed_user(email="b@example.com", first_name="Birna", national_id="0202024040")
        await seed_user(email="a@example.com", first_name="Anna", national_id="0101302989")
        await house_association_service.add_member(association.id, "0202024040", manager.id)
        await house_association_service.add_member(association.id, "0101302989", manager.id)

        members, pagination = await house_association_service.list_members(
            association.id, manager.id, UserRole.MANAGER
        )

        assert [m.user.first_name for m in members] == ["Anna", "Birna"]
        assert pagination.total == 2

    @pytest.mark.asyncio
    async def test_member_can_list_roster(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        manager: User,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        association = await create("111-111")
        member = await seed_user(email="a@example.com", national_id="0101302989")
        await house_association_service.add_member(association.id, "0101302989", manager.id)

        members, _ = await house_association_service.list_members(
            association.id, member.id, UserRole.MEMBER
        )

        assert [m.user_id for m in members] == [member.id]

    @pytest.mark.asyncio
    async def test_outsider_cannot_list_roster(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        other_manager: User,
    ) -> None:
        association = await create("111-111")

        with pytest.raises(ForbiddenError):
            await house_association_service.list_members(
                association.id, other_manager.id, UserRole.MANAGER
            )

    @pytest.mark.asyncio
    async def test_remove_member(
        self,
        house_association_service: HouseAssociationService,
        create: Callable,
        manager: User,
        seed_user: Callable[..., Awaitable[User]],
    ) -> None:
        association = await create("111-111")
        member = await seed_user(email="a@example.com", national_id="0101302989")
        await house_association_service.add_member(association.id, "0101302989", manager.id)

        await house_association_service.remove_member(association.id, member.id, manager.id)

        with pytest.raises(ForbiddenError):
            await house_association_service.get(association.id, member.id, UserRole.MEMBER)
