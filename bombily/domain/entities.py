"""
Domain entities with business logic.

``Order.apply`` runs the lifecycle rules in ``lifecycle.py`` and only
mutates the entity once the whole transition has been validated; a
rejected event leaves the order exactly as it was.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import OrderEvent, OrderStatus, OrderType, UserRole
from .lifecycle import OrderChange, plan_transition


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Actor:
    """The authenticated user a request is made on behalf of."""

    user_id: int
    role: UserRole
    city_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Order:
    id: Optional[int] = None
    user_id: int = 0
    driver_id: Optional[int] = None
    city_id: Optional[int] = None
    shop_id: Optional[int] = None
    type: OrderType = OrderType.TAXI
    from_address: str = ""
    to_address: str = ""
    comment: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    status: OrderStatus = OrderStatus.PENDING
    passenger_confirmed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def apply(self, event: OrderEvent, actor: Actor) -> OrderChange:
        """Apply *event* by *actor* if legal, else raise and change nothing."""
        change = plan_transition(self, event, actor)
        self.status = change.new_status
        self.driver_id = change.driver_id
        self.passenger_confirmed = change.passenger_confirmed
        return change

    def is_visible_to(self, actor: Actor) -> bool:
        return actor.is_admin or actor.user_id in (self.user_id, self.driver_id)
