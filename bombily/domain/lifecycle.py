"""
Order lifecycle rules.

::

    pending -> accepted -> en_route -> arrived -> passenger_on_way -> completed
                                       arrived ----------------------> completed
    pending | accepted | en_route ----------------------------------> cancelled

``complete`` is allowed from both ``arrived`` and ``passenger_on_way``: a
driver may finish a trip without the passenger's "ready" signal.

Checks run in a fixed order so the caller always gets the most specific
error:

1. terminal or wrong source status         -> ``InvalidTransition``
2. actor's role can never send the event   -> ``InvalidTransition``
3. actor has the role but not the order    -> ``NotAssigned``

Planning is pure.  Persisting the plan (conditional on
``expected_status``) is the service layer's job.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from .enums import TERMINAL_STATUSES, OrderEvent, OrderStatus, UserRole
from .errors import InvalidTransition, NotAssigned

if TYPE_CHECKING:
    from .entities import Actor, Order


class Party(enum.Enum):
    """Who may send an event."""

    ANY_DRIVER = "any_driver"
    ASSIGNEE = "assignee"
    REQUESTER = "requester"
    ASSIGNEE_OR_REQUESTER = "assignee_or_requester"


@dataclass(frozen=True)
class TransitionRule:
    sources: frozenset[OrderStatus]
    target: OrderStatus
    party: Party


ORDER_TRANSITIONS: dict[OrderEvent, TransitionRule] = {
    OrderEvent.ACCEPT: TransitionRule(
        frozenset({OrderStatus.PENDING}), OrderStatus.ACCEPTED, Party.ANY_DRIVER
    ),
    OrderEvent.START: TransitionRule(
        frozenset({OrderStatus.ACCEPTED}), OrderStatus.EN_ROUTE, Party.ASSIGNEE
    ),
    OrderEvent.ARRIVE: TransitionRule(
        frozenset({OrderStatus.EN_ROUTE}), OrderStatus.ARRIVED, Party.ASSIGNEE
    ),
    OrderEvent.PASSENGER_READY: TransitionRule(
        frozenset({OrderStatus.ARRIVED}),
        OrderStatus.PASSENGER_ON_WAY,
        Party.REQUESTER,
    ),
    OrderEvent.COMPLETE: TransitionRule(
        frozenset({OrderStatus.ARRIVED, OrderStatus.PASSENGER_ON_WAY}),
        OrderStatus.COMPLETED,
        Party.ASSIGNEE,
    ),
    OrderEvent.CANCEL: TransitionRule(
        frozenset(
            {OrderStatus.PENDING, OrderStatus.ACCEPTED, OrderStatus.EN_ROUTE}
        ),
        OrderStatus.CANCELLED,
        Party.ASSIGNEE_OR_REQUESTER,
    ),
}


@dataclass(frozen=True)
class OrderChange:
    """A validated transition, ready to be written conditionally."""

    order_id: Optional[int]
    event: OrderEvent
    actor_id: int
    expected_status: OrderStatus
    new_status: OrderStatus
    driver_id: Optional[int]
    passenger_confirmed: bool

    def values(self) -> dict[str, Any]:
        return {
            "status": self.new_status,
            "driver_id": self.driver_id,
            "passenger_confirmed": self.passenger_confirmed,
        }


def plan_transition(order: Order, event: OrderEvent, actor: Actor) -> OrderChange:
    """Validate *event* by *actor* against *order* and describe the result."""
    event = OrderEvent(event)
    rule = ORDER_TRANSITIONS[event]
    status = OrderStatus(order.status)

    if status in TERMINAL_STATUSES:
        raise InvalidTransition(
            f"Order is already {status.value}; no further changes are allowed"
        )
    if status not in rule.sources:
        raise InvalidTransition(
            f"Cannot {event.value} an order in status {status.value}"
        )
    if event is OrderEvent.ACCEPT and order.driver_id is not None:
        raise InvalidTransition("Order already has a driver")

    _authorize(rule.party, order, event, actor)

    driver_id = order.driver_id
    passenger_confirmed = bool(order.passenger_confirmed)
    if event is OrderEvent.ACCEPT:
        driver_id = actor.user_id
    elif event is OrderEvent.PASSENGER_READY:
        passenger_confirmed = True
    elif event is OrderEvent.CANCEL:
        driver_id = None

    return OrderChange(
        order_id=order.id,
        event=event,
        actor_id=actor.user_id,
        expected_status=status,
        new_status=rule.target,
        driver_id=driver_id,
        passenger_confirmed=passenger_confirmed,
    )


def _authorize(party: Party, order: Order, event: OrderEvent, actor: Actor) -> None:
    role = UserRole(actor.role)
    if role is UserRole.ADMIN:
        raise InvalidTransition(
            "Administrators do not take part in the order lifecycle"
        )

    if party is Party.ANY_DRIVER:
        if role is not UserRole.DRIVER:
            raise InvalidTransition(f"Only drivers can {event.value} orders")
        return

    if party is Party.ASSIGNEE:
        if role is not UserRole.DRIVER:
            raise InvalidTransition(f"Only the assigned driver can {event.value}")
        if order.driver_id != actor.user_id:
            raise NotAssigned("This order is assigned to another driver")
        return

    if party is Party.REQUESTER:
        if role is not UserRole.PASSENGER:
            raise InvalidTransition("Only the passenger can confirm they are ready")
        if order.user_id != actor.user_id:
            raise NotAssigned("This order belongs to another passenger")
        return

    # ASSIGNEE_OR_REQUESTER
    if role is UserRole.PASSENGER and order.user_id == actor.user_id:
        return
    if (
        role is UserRole.DRIVER
        and order.driver_id is not None
        and order.driver_id == actor.user_id
    ):
        return
    raise NotAssigned("Only the passenger or the assigned driver can cancel")
