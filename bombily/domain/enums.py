"""Domain enumerations."""

import enum


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EN_ROUTE = "en_route"
    ARRIVED = "arrived"
    PASSENGER_ON_WAY = "passenger_on_way"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


class OrderEvent(str, enum.Enum):
    ACCEPT = "accept"
    START = "start"
    ARRIVE = "arrive"
    PASSENGER_READY = "passenger_ready"
    COMPLETE = "complete"
    CANCEL = "cancel"


class OrderType(str, enum.Enum):
    TAXI = "taxi"
    CARGO = "cargo"
    DELIVERY = "delivery"


class UserRole(str, enum.Enum):
    PASSENGER = "passenger"
    DRIVER = "driver"
    ADMIN = "admin"


class ScheduleDay(str, enum.Enum):
    TODAY = "today"
    TOMORROW = "tomorrow"


class ChangeKind(str, enum.Enum):
    INSERT = "insert"
    UPDATE = "update"


class ProposalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
