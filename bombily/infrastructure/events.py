"""
Order change feed over Redis pub/sub.

Every insert and every successful transition is published as an
``OrderChangeEvent``.  Delivery is at-least-once from the consumer's point
of view (reconnects may replay), so consumers claim each ``event_id``
through ``EventDeduplicator`` before acting on it.

The de-duplicator uses the same ``SET NX EX`` primitive as a lock: the
first claimant wins and the key expires after the dedup window.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as aioredis
from pydantic import BaseModel, Field

from bombily.domain.entities import Order
from bombily.domain.enums import ChangeKind, OrderStatus, OrderType


class OrderSnapshot(BaseModel):
    id: int
    user_id: int
    driver_id: Optional[int] = None
    city_id: Optional[int] = None
    shop_id: Optional[int] = None
    type: OrderType
    from_address: str
    to_address: str
    comment: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    status: OrderStatus
    passenger_confirmed: bool = False

    model_config = {"from_attributes": True}

    def to_entity(self) -> Order:
        return Order(**self.model_dump())


class OrderChangeEvent(BaseModel):
    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    kind: ChangeKind
    order: OrderSnapshot
    old_status: Optional[OrderStatus] = None
    previous_driver_id: Optional[int] = None
    actor_id: Optional[int] = None
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class RedisOrderEventPublisher:
    def __init__(self, client: aioredis.Redis, channel: str):
        self.redis = client
        self.channel = channel

    async def publish(self, event: OrderChangeEvent) -> None:
        await self.redis.publish(self.channel, event.model_dump_json())


class EventDeduplicator:
    def __init__(self, client: aioredis.Redis, ttl_seconds: int = 3600):
        self.redis = client
        self.ttl = ttl_seconds

    async def claim(self, event_id: str) -> bool:
        """True the first time *event_id* is seen within the window."""
        return bool(
            await self.redis.set(
                f"order-event:{event_id}", "1", nx=True, ex=self.ttl
            )
        )
