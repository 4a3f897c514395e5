"""Service-level tests: lifecycle orchestration against SQLite."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from bombily.domain.entities import Actor
from bombily.domain.enums import (
    ChangeKind,
    OrderEvent,
    OrderStatus,
    OrderType,
    ScheduleDay,
    UserRole,
)
from bombily.domain.errors import (
    CityNotConfirmed,
    CollaboratorUnavailable,
    Forbidden,
    LeadTimeTooShort,
    NotAssigned,
    OrderNotFound,
    ShopNotFound,
    StaleTransition,
)
from bombily.infrastructure.models import OrderModel
from bombily.services.lifecycle import (
    NewOrder,
    OrderLifecycleService,
    OrderScope,
    drain_publishes,
)


def actors(world):
    return {
        "passenger": Actor(world.passenger_id, UserRole.PASSENGER, world.city_id),
        "other_passenger": Actor(world.other_passenger_id, UserRole.PASSENGER, world.city_id),
        "homeless": Actor(world.homeless_passenger_id, UserRole.PASSENGER, None),
        "driver_a": Actor(world.driver_a_id, UserRole.DRIVER, world.city_id),
        "driver_b": Actor(world.driver_b_id, UserRole.DRIVER, world.city_id),
        "far_driver": Actor(world.far_driver_id, UserRole.DRIVER, world.other_city_id),
        "admin": Actor(world.admin_id, UserRole.ADMIN, None),
    }


TAXI = NewOrder(type=OrderType.TAXI, from_address="Bauman St 1", to_address="Station")


@pytest.fixture
def service(db_session, publisher, clock):
    return OrderLifecycleService(db_session, publisher, clock)


class TestCreate:
    @pytest.mark.asyncio
    async def test_creates_pending_order_and_publishes_insert(self, service, world, publisher):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        assert publisher.events == []

        await service.commit()
        await drain_publishes()

        assert order.status == OrderStatus.PENDING
        assert order.driver_id is None
        assert order.city_id == world.city_id
        assert order.scheduled_time is None
        assert [e.kind for e in publisher.events] == [ChangeKind.INSERT]
        assert publisher.events[0].order.id == order.id

    @pytest.mark.asyncio
    async def test_scheduled_order_stores_resolved_time(self, service, world):
        new = NewOrder(
            type=OrderType.CARGO,
            from_address="A",
            to_address="B",
            schedule_day=ScheduleDay.TODAY,
            schedule_hour=13,
            schedule_minute=1,
        )
        order = await service.create_order(actors(world)["passenger"], new)
        stored = order.scheduled_time.replace(tzinfo=timezone.utc)
        assert stored == datetime(2024, 1, 1, 13, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_rejected_schedule_creates_nothing(self, service, world, publisher):
        new = NewOrder(
            type=OrderType.TAXI,
            from_address="A",
            to_address="B",
            schedule_day=ScheduleDay.TODAY,
            schedule_hour=11,
            schedule_minute=0,
        )
        with pytest.raises(LeadTimeTooShort):
            await service.create_order(actors(world)["passenger"], new)
        assert publisher.events == []
        assert await service.list_orders(actors(world)["passenger"], OrderScope.ACTIVE) == []

    @pytest.mark.asyncio
    async def test_unconfirmed_city_is_rejected(self, service, world):
        with pytest.raises(CityNotConfirmed):
            await service.create_order(actors(world)["homeless"], TAXI)

    @pytest.mark.asyncio
    async def test_drivers_cannot_order(self, service, world):
        with pytest.raises(Forbidden):
            await service.create_order(actors(world)["driver_a"], TAXI)

    @pytest.mark.asyncio
    async def test_delivery_from_shop(self, service, world):
        new = NewOrder(
            type=OrderType.DELIVERY, from_address="Bakery", to_address="Home",
            shop_id=world.shop_id,
        )
        order = await service.create_order(actors(world)["passenger"], new)
        assert order.shop_id == world.shop_id

    @pytest.mark.asyncio
    async def test_unknown_shop(self, service, world):
        new = NewOrder(
            type=OrderType.DELIVERY, from_address="Bakery", to_address="Home",
            shop_id=999,
        )
        with pytest.raises(ShopNotFound):
            await service.create_order(actors(world)["passenger"], new)


class TestPerform:
    @pytest.mark.asyncio
    async def test_accept_assigns_driver_and_publishes_update(self, service, world, publisher, clock):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)

        updated = await service.perform(order.id, OrderEvent.ACCEPT, who["driver_a"])
        await service.commit()
        await drain_publishes()

        assert updated.status == OrderStatus.ACCEPTED
        assert updated.driver_id == world.driver_a_id
        event = publisher.events[-1]
        assert event.kind == ChangeKind.UPDATE
        assert event.old_status == OrderStatus.PENDING
        assert event.actor_id == world.driver_a_id

    @pytest.mark.asyncio
    async def test_foreign_driver_gets_not_assigned(self, service, world):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        await service.perform(order.id, OrderEvent.ACCEPT, who["driver_a"])

        with pytest.raises(NotAssigned):
            await service.perform(order.id, OrderEvent.START, who["driver_b"])

        reloaded = await service.get_visible(order.id, who["passenger"])
        assert reloaded.status == OrderStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_full_trip(self, service, world):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        for event, actor in [
            (OrderEvent.ACCEPT, who["driver_a"]),
            (OrderEvent.START, who["driver_a"]),
            (OrderEvent.ARRIVE, who["driver_a"]),
            (OrderEvent.PASSENGER_READY, who["passenger"]),
            (OrderEvent.COMPLETE, who["driver_a"]),
        ]:
            order = await service.perform(order.id, event, actor)

        assert order.status == OrderStatus.COMPLETED
        assert order.passenger_confirmed is True
        history = await service.list_orders(who["driver_a"], OrderScope.HISTORY)
        assert [o.id for o in history] == [order.id]

    @pytest.mark.asyncio
    async def test_cancel_clears_driver(self, service, world):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        await service.perform(order.id, OrderEvent.ACCEPT, who["driver_a"])

        cancelled = await service.perform(order.id, OrderEvent.CANCEL, who["driver_a"])

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.driver_id is None

    @pytest.mark.asyncio
    async def test_missing_order(self, service, world):
        with pytest.raises(OrderNotFound):
            await service.perform(404, OrderEvent.ACCEPT, actors(world)["driver_a"])

    @pytest.mark.asyncio
    async def test_stale_read_is_rejected(self, service, world):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        await service.perform(order.id, OrderEvent.ACCEPT, who["driver_a"])

        # Driver B acts on a copy read before driver A accepted
        stale = OrderModel(
            id=order.id,
            user_id=world.passenger_id,
            driver_id=None,
            city_id=world.city_id,
            type=OrderType.TAXI,
            from_address="Bauman St 1",
            to_address="Station",
            status=OrderStatus.PENDING,
            passenger_confirmed=False,
        )
        with patch.object(service.orders, "get_by_id", AsyncMock(return_value=stale)):
            with pytest.raises(StaleTransition):
                await service.perform(order.id, OrderEvent.ACCEPT, who["driver_b"])

        current = await service.get_visible(order.id, who["driver_a"])
        assert current.driver_id == world.driver_a_id

    @pytest.mark.asyncio
    async def test_storage_failure_is_collaborator_unavailable(self, service, world):
        boom = OperationalError("SELECT", {}, Exception("connection refused"))
        with patch.object(service.orders, "get_by_id", AsyncMock(side_effect=boom)):
            with pytest.raises(CollaboratorUnavailable):
                await service.perform(1, OrderEvent.ACCEPT, actors(world)["driver_a"])


class TestChangeFeed:
    @pytest.mark.asyncio
    async def test_nothing_is_published_before_commit(self, service, world, publisher):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        await service.perform(order.id, OrderEvent.ACCEPT, who["driver_a"])
        await drain_publishes()

        assert publisher.events == []
        assert len(service.pending_events) == 2

    @pytest.mark.asyncio
    async def test_failed_commit_publishes_nothing(self, service, world, publisher):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        await service.perform(order.id, OrderEvent.ACCEPT, who["driver_a"])

        boom = OperationalError("COMMIT", {}, Exception("connection reset"))
        with patch.object(service.session, "commit", AsyncMock(side_effect=boom)):
            with pytest.raises(CollaboratorUnavailable):
                await service.commit()
        await drain_publishes()

        assert publisher.events == []

    @pytest.mark.asyncio
    async def test_unexpected_publisher_error_does_not_fail_transition(
        self, service, world, publisher
    ):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        publisher.publish = AsyncMock(side_effect=RuntimeError("Event loop is closed"))

        updated = await service.perform(order.id, OrderEvent.ACCEPT, who["driver_a"])
        await service.commit()
        await drain_publishes()

        assert updated.status == OrderStatus.ACCEPTED
        assert publisher.publish.await_count == 2

    @pytest.mark.asyncio
    async def test_slow_publisher_does_not_block_transition(
        self, db_session, world, publisher, clock
    ):
        service = OrderLifecycleService(
            db_session, publisher, clock, publish_timeout=1.0
        )
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)

        async def hang(event):
            await asyncio.sleep(10)

        publisher.publish = hang
        loop = asyncio.get_running_loop()
        started = loop.time()
        updated = await service.perform(order.id, OrderEvent.ACCEPT, who["driver_a"])
        await service.commit()

        assert loop.time() - started < 1.0
        assert updated.status == OrderStatus.ACCEPTED
        await drain_publishes()


class TestQueries:
    @pytest.mark.asyncio
    async def test_available_is_city_scoped_and_unassigned(self, service, world):
        who = actors(world)
        first = await service.create_order(who["passenger"], TAXI)
        second = await service.create_order(who["other_passenger"], TAXI)
        await service.perform(first.id, OrderEvent.ACCEPT, who["driver_a"])

        available = await service.list_orders(who["driver_b"], OrderScope.AVAILABLE)
        assert [o.id for o in available] == [second.id]
        assert await service.list_orders(who["far_driver"], OrderScope.AVAILABLE) == []

    @pytest.mark.asyncio
    async def test_passenger_sees_only_own_active_orders(self, service, world):
        who = actors(world)
        mine = await service.create_order(who["passenger"], TAXI)
        await service.create_order(who["other_passenger"], TAXI)

        active = await service.list_orders(who["passenger"], OrderScope.ACTIVE)
        assert [o.id for o in active] == [mine.id]

    @pytest.mark.asyncio
    async def test_passengers_cannot_browse_available(self, service, world):
        with pytest.raises(Forbidden):
            await service.list_orders(actors(world)["passenger"], OrderScope.AVAILABLE)

    @pytest.mark.asyncio
    async def test_strangers_cannot_view(self, service, world):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        with pytest.raises(Forbidden):
            await service.get_visible(order.id, who["other_passenger"])
        assert (await service.get_visible(order.id, who["admin"])).id == order.id


class TestForceDelete:
    @pytest.mark.asyncio
    async def test_admin_can_delete_in_any_state(self, service, world):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        await service.perform(order.id, OrderEvent.ACCEPT, who["driver_a"])

        await service.force_delete(order.id, who["admin"])

        with pytest.raises(OrderNotFound):
            await service.get_visible(order.id, who["admin"])

    @pytest.mark.asyncio
    async def test_non_admin_cannot_delete(self, service, world):
        who = actors(world)
        order = await service.create_order(who["passenger"], TAXI)
        with pytest.raises(Forbidden):
            await service.force_delete(order.id, who["passenger"])
