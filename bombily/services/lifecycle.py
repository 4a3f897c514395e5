"""
Order lifecycle operations.

Glue between the pure rules in ``bombily.domain`` and the collaborators:
storage (repositories over one ``AsyncSession``), the change feed and the
clock.  Each transition is a read, a pure plan and a single conditional
UPDATE keyed on the status that was read; losing that race surfaces as
``StaleTransition`` instead of overwriting somebody else's change.

Change events are queued while the request runs and published only after
``commit()`` succeeds, each in its own background task.  A rejected or
rolled-back operation therefore never reaches the feed, and a slow or
broken feed never holds up or fails a transition.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from bombily.domain.clock import Clock
from bombily.domain.entities import Actor
from bombily.domain.enums import (
    TERMINAL_STATUSES,
    ChangeKind,
    OrderEvent,
    OrderStatus,
    OrderType,
    ScheduleDay,
    UserRole,
)
from bombily.domain.errors import (
    CityNotConfirmed,
    Forbidden,
    OrderNotFound,
    ShopNotFound,
    StaleTransition,
)
from bombily.domain.scheduling import DEFAULT_LEAD_TIME, TimeComponent, resolve, to_iso
from bombily.infrastructure.events import OrderChangeEvent, OrderSnapshot
from bombily.infrastructure.models import OrderModel
from bombily.infrastructure.repositories import (
    OrderRepository,
    ShopRepository,
    to_entity,
)
from bombily.services.storage import storage_errors

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = [s for s in OrderStatus if s not in TERMINAL_STATUSES]

_publishes: set[asyncio.Task] = set()


class EventPublisher(Protocol):
    async def publish(self, event: OrderChangeEvent) -> None: ...


class OrderScope(str, enum.Enum):
    ACTIVE = "active"
    HISTORY = "history"
    AVAILABLE = "available"


@dataclass
class NewOrder:
    type: OrderType
    from_address: str
    to_address: str
    comment: Optional[str] = None
    shop_id: Optional[int] = None
    schedule_day: Optional[ScheduleDay] = None
    schedule_hour: TimeComponent = None
    schedule_minute: TimeComponent = None


async def drain_publishes() -> None:
    """Wait for every in-flight publish (shutdown, tests)."""
    if _publishes:
        await asyncio.gather(*list(_publishes), return_exceptions=True)


class OrderLifecycleService:
    def __init__(
        self,
        session: AsyncSession,
        publisher: EventPublisher,
        clock: Clock,
        lead_time: timedelta = DEFAULT_LEAD_TIME,
        publish_timeout: float = 2.0,
    ):
        self.session = session
        self.orders = OrderRepository(session)
        self.shops = ShopRepository(session)
        self.publisher = publisher
        self.clock = clock
        self.lead_time = lead_time
        self.publish_timeout = publish_timeout
        self.pending_events: list[OrderChangeEvent] = []

    # ── Commands ──────────────────────────────────────────────────

    async def create_order(self, actor: Actor, new: NewOrder) -> OrderModel:
        if actor.role is not UserRole.PASSENGER:
            raise Forbidden("Only passengers can place orders")
        if actor.city_id is None:
            raise CityNotConfirmed(
                "Your city has not been confirmed by an administrator yet"
            )

        scheduled_time = None
        if new.schedule_day is not None:
            scheduled_time = resolve(
                new.schedule_day,
                new.schedule_hour,
                new.schedule_minute,
                self.clock.now(),
                self.lead_time,
            )

        with storage_errors("create order"):
            if new.shop_id is not None:
                shop = await self.shops.get_by_id(new.shop_id)
                if shop is None or shop.city_id != actor.city_id:
                    raise ShopNotFound("This shop does not deliver in your city")

            order = await self.orders.create_order(
                user_id=actor.user_id,
                city_id=actor.city_id,
                shop_id=new.shop_id,
                type=new.type,
                from_address=new.from_address,
                to_address=new.to_address,
                comment=new.comment or None,
                scheduled_time=scheduled_time,
            )

        logger.info(
            "Order %d (%s) created by user %d, pickup %s",
            order.id,
            new.type.value,
            actor.user_id,
            to_iso(scheduled_time) if scheduled_time else "now",
        )
        self.pending_events.append(
            OrderChangeEvent(
                kind=ChangeKind.INSERT,
                order=OrderSnapshot.model_validate(order),
                actor_id=actor.user_id,
            )
        )
        return order

    async def perform(
        self, order_id: int, event: OrderEvent, actor: Actor
    ) -> OrderModel:
        """Run one lifecycle event; the order is unchanged on any error."""
        with storage_errors("load order"):
            model = await self.orders.get_by_id(order_id)
        if model is None:
            raise OrderNotFound(f"Order {order_id} not found")

        order = to_entity(model)
        previous_driver_id = order.driver_id
        change = order.apply(event, actor)

        with storage_errors("update order"):
            updated = await self.orders.apply_change(change, self.clock.now())
        if updated is None:
            raise StaleTransition(
                "The order was changed by someone else. Refresh and try again."
            )

        logger.info(
            "Order %d: %s -> %s (%s by user %d)",
            order_id,
            change.expected_status.value,
            change.new_status.value,
            change.event.value,
            actor.user_id,
        )
        self.pending_events.append(
            OrderChangeEvent(
                kind=ChangeKind.UPDATE,
                order=OrderSnapshot.model_validate(updated),
                old_status=change.expected_status,
                previous_driver_id=previous_driver_id,
                actor_id=actor.user_id,
            )
        )
        return updated

    async def force_delete(self, order_id: int, actor: Actor) -> None:
        """Administrative override; not a lifecycle transition."""
        if not actor.is_admin:
            raise Forbidden("Only administrators can delete orders")
        with storage_errors("delete order"):
            model = await self.orders.get_by_id(order_id)
            if model is None:
                raise OrderNotFound(f"Order {order_id} not found")
            await self.orders.delete(model)
        logger.warning("Order %d force-deleted by admin %d", order_id, actor.user_id)

    async def commit(self) -> None:
        """Commit the unit of work, then hand queued events to the feed."""
        with storage_errors("commit"):
            await self.session.commit()
        events, self.pending_events = self.pending_events, []
        for event in events:
            task = asyncio.create_task(self._publish(event))
            _publishes.add(task)
            task.add_done_callback(_publishes.discard)

    # ── Queries ───────────────────────────────────────────────────

    async def get_visible(self, order_id: int, actor: Actor) -> OrderModel:
        with storage_errors("load order"):
            model = await self.orders.get_by_id(order_id)
        if model is None:
            raise OrderNotFound(f"Order {order_id} not found")
        if not to_entity(model).is_visible_to(actor):
            raise Forbidden("You cannot view this order")
        return model

    async def list_orders(self, actor: Actor, scope: OrderScope) -> list[OrderModel]:
        with storage_errors("list orders"):
            if actor.is_admin:
                return await self.orders.list_recent()

            if actor.role is UserRole.DRIVER:
                if scope is OrderScope.AVAILABLE:
                    if actor.city_id is None:
                        return []
                    return await self.orders.list_available(actor.city_id)
                if scope is OrderScope.HISTORY:
                    return await self.orders.list_for_driver(
                        actor.user_id, [OrderStatus.COMPLETED]
                    )
                return await self.orders.list_for_driver(
                    actor.user_id, ACTIVE_STATUSES
                )

            if scope is OrderScope.AVAILABLE:
                raise Forbidden("Only drivers can browse available orders")
            if scope is OrderScope.HISTORY:
                return await self.orders.list_for_requester(
                    actor.user_id, [OrderStatus.COMPLETED]
                )
            return await self.orders.list_for_requester(
                actor.user_id, ACTIVE_STATUSES
            )

    # ── Internals ─────────────────────────────────────────────────

    async def _publish(self, event: OrderChangeEvent) -> None:
        try:
            await asyncio.wait_for(
                self.publisher.publish(event), timeout=self.publish_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out publishing %s event %s for order %d",
                event.kind.value,
                event.event_id,
                event.order.id,
            )
        except Exception:
            logger.exception(
                "Could not publish %s event %s for order %d",
                event.kind.value,
                event.event_id,
                event.order.id,
            )
