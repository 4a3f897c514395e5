"""
Which spoken notification a change to an order triggers, and for whom.

* A brand-new unassigned ``pending`` order is broadcast to every driver in
  the order's city.
* A status change caused by the driver notifies the requester.
* A status change caused by the requester notifies the (previous) assignee.
* An update that leaves the status unchanged notifies nobody, so a
  redelivered event can never speak twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .entities import Order
from .enums import ChangeKind, OrderStatus

NEW_ORDER_BROADCAST = "New order available in your city."

PASSENGER_MESSAGES: dict[OrderStatus, str] = {
    OrderStatus.ACCEPTED: (
        "Your order has been accepted. A driver is assigned and getting ready."
    ),
    OrderStatus.EN_ROUTE: "Your driver is on the way to you.",
    OrderStatus.ARRIVED: (
        "Your driver has arrived and is waiting at the pickup address."
    ),
    OrderStatus.COMPLETED: (
        "Trip completed. Please confirm the fare and pay via transfer."
    ),
    OrderStatus.CANCELLED: "The driver has cancelled your order.",
}

DRIVER_MESSAGES: dict[OrderStatus, str] = {
    OrderStatus.PASSENGER_ON_WAY: (
        "The passenger is coming out. Wait near the pickup address."
    ),
    OrderStatus.CANCELLED: "The passenger has cancelled the order.",
}


@dataclass(frozen=True)
class Notification:
    audience: str
    text: str


def user_audience(user_id: int) -> str:
    return f"user:{user_id}"


def city_audience(city_id: int) -> str:
    return f"city:{city_id}"


def notifications_for(
    kind: ChangeKind,
    order: Order,
    old_status: Optional[OrderStatus] = None,
    actor_id: Optional[int] = None,
    previous_driver_id: Optional[int] = None,
) -> list[Notification]:
    """Return the notifications one change event should fire (0 or 1)."""
    new_status = OrderStatus(order.status)

    if ChangeKind(kind) is ChangeKind.INSERT:
        if (
            new_status is OrderStatus.PENDING
            and order.driver_id is None
            and order.city_id is not None
        ):
            return [Notification(city_audience(order.city_id), NEW_ORDER_BROADCAST)]
        return []

    if old_status is not None and OrderStatus(old_status) is new_status:
        return []

    if actor_id is not None and actor_id == order.user_id:
        # Requester-caused; the counterpart is whoever was driving it.
        driver_id = order.driver_id or previous_driver_id
        text = DRIVER_MESSAGES.get(new_status)
        if driver_id is None or text is None:
            return []
        return [Notification(user_audience(driver_id), text)]

    text = PASSENGER_MESSAGES.get(new_status)
    if text is None:
        return []
    return [Notification(user_audience(order.user_id), text)]
