"""
Domain errors.

Every error carries a stable ``code`` so the API layer can translate it
without string matching.  None of them is fatal: callers surface the
message to the user and keep going.
"""

from __future__ import annotations


class BombilyError(Exception):
    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ── Scheduled time ────────────────────────────────────────────────────


class ScheduleError(BombilyError):
    """Base class for rejected pickup times."""


class InvalidTimeComponent(ScheduleError):
    code = "invalid_time_component"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class TimeAlreadyPassed(ScheduleError):
    code = "time_already_passed"


class LeadTimeTooShort(ScheduleError):
    code = "lead_time_too_short"


# ── Order lifecycle ───────────────────────────────────────────────────


class OrderError(BombilyError):
    """Base class for rejected order operations."""


class InvalidTransition(OrderError):
    """Event not allowed from the current status or for the actor's role."""

    code = "invalid_transition"


class StaleTransition(OrderError):
    """The order changed between read and conditional write."""

    code = "stale_transition"


class NotAssigned(OrderError):
    """Actor tried to act on an order they do not own."""

    code = "not_assigned"


class OrderNotFound(OrderError):
    code = "order_not_found"


class CityNotConfirmed(OrderError):
    code = "city_not_confirmed"


class ShopNotFound(OrderError):
    code = "shop_not_found"


class Forbidden(OrderError):
    code = "forbidden"


# ── Cities, shops and users ───────────────────────────────────────


class DirectoryError(BombilyError):
    """Base class for rejected changes to cities, shops and user cities."""


class CityNotFound(DirectoryError):
    code = "city_not_found"


class UserNotFound(DirectoryError):
    code = "user_not_found"


class ProposalNotFound(DirectoryError):
    code = "proposal_not_found"


class DuplicateCity(DirectoryError):
    code = "duplicate_city"


class ResourceInUse(DirectoryError):
    """Still referenced by users, shops or orders; deactivate instead."""

    code = "resource_in_use"


# ── Collaborators ─────────────────────────────────────────────────────


class CollaboratorUnavailable(BombilyError):
    """Storage or network collaborator failed; nothing was applied."""

    code = "collaborator_unavailable"
