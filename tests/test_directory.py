"""Service-level tests: cities, shops, user cities and city proposals."""

from __future__ import annotations

import pytest

from bombily.domain.entities import Actor
from bombily.domain.enums import OrderType, ProposalStatus, UserRole
from bombily.domain.errors import (
    CityNotFound,
    DuplicateCity,
    Forbidden,
    ProposalNotFound,
    ResourceInUse,
    ShopNotFound,
    UserNotFound,
)
from bombily.infrastructure.repositories import UserRepository
from bombily.services.directory import DirectoryService
from bombily.services.lifecycle import NewOrder, OrderLifecycleService


def admin(world) -> Actor:
    return Actor(world.admin_id, UserRole.ADMIN, None)


def passenger(world) -> Actor:
    return Actor(world.passenger_id, UserRole.PASSENGER, world.city_id)


@pytest.fixture
def directory(db_session):
    return DirectoryService(db_session)


class TestCities:
    @pytest.mark.asyncio
    async def test_create_lists_inactive_too(self, directory, world):
        city = await directory.create_city(admin(world), "  Ufa ", is_active=False)
        assert city.name == "Ufa"
        assert city.is_active is False

        names = [c.name for c in await directory.list_cities(admin(world))]
        assert names == ["Kazan", "Samara", "Ufa"]

    @pytest.mark.asyncio
    async def test_duplicate_name(self, directory, world):
        with pytest.raises(DuplicateCity):
            await directory.create_city(admin(world), "Kazan")

    @pytest.mark.asyncio
    async def test_only_admins(self, directory, world):
        with pytest.raises(Forbidden):
            await directory.create_city(passenger(world), "Ufa")
        with pytest.raises(Forbidden):
            await directory.list_cities(passenger(world))

    @pytest.mark.asyncio
    async def test_rename_and_deactivate(self, directory, world):
        city = await directory.update_city(
            admin(world), world.other_city_id, name="Samara-on-Volga", is_active=False
        )
        assert city.name == "Samara-on-Volga"
        assert city.is_active is False

    @pytest.mark.asyncio
    async def test_rename_onto_existing_name(self, directory, world):
        with pytest.raises(DuplicateCity):
            await directory.update_city(admin(world), world.other_city_id, name="Kazan")

    @pytest.mark.asyncio
    async def test_update_missing_city(self, directory, world):
        with pytest.raises(CityNotFound):
            await directory.update_city(admin(world), 9999, is_active=True)

    @pytest.mark.asyncio
    async def test_delete_unused_city(self, directory, world):
        city = await directory.create_city(admin(world), "Ufa")
        await directory.delete_city(admin(world), city.id)
        assert await directory.cities.get_by_id(city.id) is None

    @pytest.mark.asyncio
    async def test_delete_city_in_use(self, directory, world):
        with pytest.raises(ResourceInUse):
            await directory.delete_city(admin(world), world.city_id)


class TestShops:
    @pytest.mark.asyncio
    async def test_create_and_list(self, directory, world):
        shop = await directory.create_shop(
            admin(world), "Apteka", world.city_id, description="  24/7 "
        )
        assert shop.description == "24/7"

        names = [s.name for s in await directory.list_shops(world.city_id)]
        assert names == ["Apteka", "Corner Bakery"]

    @pytest.mark.asyncio
    async def test_create_in_missing_city(self, directory, world):
        with pytest.raises(CityNotFound):
            await directory.create_shop(admin(world), "Apteka", 9999)

    @pytest.mark.asyncio
    async def test_inactive_city_has_no_public_shops(self, directory, world):
        await directory.update_city(admin(world), world.city_id, is_active=False)
        with pytest.raises(CityNotFound):
            await directory.list_shops(world.city_id)

    @pytest.mark.asyncio
    async def test_update_moves_and_clears_description(self, directory, world):
        await directory.update_shop(admin(world), world.shop_id, description="fresh")
        shop = await directory.update_shop(
            admin(world), world.shop_id, description="", city_id=world.other_city_id
        )
        assert shop.description is None
        assert shop.city_id == world.other_city_id
        assert shop.name == "Corner Bakery"

    @pytest.mark.asyncio
    async def test_update_missing_shop(self, directory, world):
        with pytest.raises(ShopNotFound):
            await directory.update_shop(admin(world), 9999, name="Nope")

    @pytest.mark.asyncio
    async def test_delete_shop_with_orders(self, directory, db_session, world, publisher, clock):
        lifecycle = OrderLifecycleService(db_session, publisher, clock)
        await lifecycle.create_order(
            passenger(world),
            NewOrder(
                type=OrderType.DELIVERY,
                from_address="Corner Bakery",
                to_address="Home",
                shop_id=world.shop_id,
            ),
        )
        with pytest.raises(ResourceInUse):
            await directory.delete_shop(admin(world), world.shop_id)

    @pytest.mark.asyncio
    async def test_delete_shop(self, directory, world):
        await directory.delete_shop(admin(world), world.shop_id)
        assert await directory.list_shops(world.city_id) == []


class TestUserCity:
    @pytest.mark.asyncio
    async def test_assign_and_revoke(self, directory, world):
        user = await directory.assign_city(
            admin(world), world.homeless_passenger_id, world.city_id
        )
        assert user.city_id == world.city_id

        user = await directory.assign_city(admin(world), world.homeless_passenger_id, None)
        assert user.city_id is None

    @pytest.mark.asyncio
    async def test_inactive_city_cannot_be_assigned(self, directory, world):
        await directory.update_city(admin(world), world.other_city_id, is_active=False)
        with pytest.raises(CityNotFound):
            await directory.assign_city(
                admin(world), world.homeless_passenger_id, world.other_city_id
            )

    @pytest.mark.asyncio
    async def test_unknown_user(self, directory, world):
        with pytest.raises(UserNotFound):
            await directory.assign_city(admin(world), 9999, world.city_id)

    @pytest.mark.asyncio
    async def test_only_admins(self, directory, world):
        with pytest.raises(Forbidden):
            await directory.assign_city(
                passenger(world), world.homeless_passenger_id, world.city_id
            )


class TestProposals:
    @pytest.mark.asyncio
    async def test_approve_creates_city_and_assigns_proposer(
        self, directory, db_session, world
    ):
        homeless = Actor(world.homeless_passenger_id, UserRole.PASSENGER, None)
        proposal = await directory.propose_city(homeless, " Kamensk Uralsky ")
        assert proposal.status is ProposalStatus.PENDING
        assert [p.id for p in await directory.list_proposals(admin(world))] == [proposal.id]

        city = await directory.approve_proposal(
            admin(world), proposal.id, name="Kamensk-Uralsky"
        )
        assert city.name == "Kamensk-Uralsky"
        assert city.is_active is True

        user = await UserRepository(db_session).get_by_id(world.homeless_passenger_id)
        assert user.city_id == city.id
        assert await directory.list_proposals(admin(world)) == []

    @pytest.mark.asyncio
    async def test_approve_existing_name_is_duplicate(self, directory, world):
        proposal = await directory.propose_city(passenger(world), "Samara")
        with pytest.raises(DuplicateCity):
            await directory.approve_proposal(admin(world), proposal.id)

    @pytest.mark.asyncio
    async def test_reject_then_decide_again(self, directory, world):
        proposal = await directory.propose_city(passenger(world), "Atlantis")
        rejected = await directory.reject_proposal(admin(world), proposal.id)
        assert rejected.status is ProposalStatus.REJECTED

        with pytest.raises(ProposalNotFound):
            await directory.approve_proposal(admin(world), proposal.id)

    @pytest.mark.asyncio
    async def test_listing_requires_admin(self, directory, world):
        with pytest.raises(Forbidden):
            await directory.list_proposals(passenger(world))
