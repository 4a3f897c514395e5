"""
Scheduled Pickup Time Resolver
==============================

Turns the day / hour / minute picked in the order form into an absolute
UTC timestamp, or rejects it with a reason the user can act on.

Rules
-----
* ``tomorrow`` -- the civil date after ``now`` at ``hour:minute:00``.
  Always accepted; it is at least a few minutes ahead by construction.
* ``today``    -- today's civil date at ``hour:minute:00``.

  - candidate <= now               -> ``TimeAlreadyPassed``
  - candidate <= now + lead time   -> ``LeadTimeTooShort``  (the boundary
    itself is rejected: the gap must be strictly longer than the lead time)
  - otherwise accepted.

"Civil" means the wall clock of ``now``'s time zone.  A wall time that
the zone skips (daylight-saving gap) is rejected as an invalid ``hour``
rather than shifted.  The result is
normalised to UTC with seconds zeroed, so it survives a round trip
through ISO-8601 without losing minute precision.

The functions here are pure: the form recomputes them on every keystroke
and each call fully replaces the previous outcome.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union

from .enums import ScheduleDay
from .errors import (
    InvalidTimeComponent,
    LeadTimeTooShort,
    ScheduleError,
    TimeAlreadyPassed,
)

DEFAULT_LEAD_TIME = timedelta(hours=2)

TimeComponent = Union[int, str, None]

_DIGITS = re.compile(r"\d{1,2}")


@dataclass(frozen=True)
class ScheduledTimeInput:
    day: ScheduleDay
    hour: int
    minute: int


@dataclass(frozen=True)
class ScheduledTimeResult:
    """Outcome of one resolution: either a timestamp or a rejection."""

    scheduled_time: Optional[datetime] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    field: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.scheduled_time is not None


# ── Public API ────────────────────────────────────────────────────────


def resolve(
    day: Union[ScheduleDay, str],
    hour: TimeComponent,
    minute: TimeComponent,
    now: datetime,
    lead_time: timedelta = DEFAULT_LEAD_TIME,
) -> datetime:
    """Return the validated pickup instant in UTC, or raise ``ScheduleError``."""
    selected = _parse_day(day)
    h = _parse_component(hour, "hour", 23, "Hours must be between 0 and 23")
    m = _parse_component(minute, "minute", 59, "Minutes must be between 0 and 59")
    now = _aware(now)

    if selected is ScheduleDay.TOMORROW:
        candidate = _at(now.date() + timedelta(days=1), h, m, now.tzinfo)
        return candidate.astimezone(timezone.utc)

    candidate = _at(now.date(), h, m, now.tzinfo).astimezone(timezone.utc)
    now_utc = now.astimezone(timezone.utc)

    if candidate <= now_utc:
        raise TimeAlreadyPassed(
            "The selected time has already passed today. Choose tomorrow."
        )
    if candidate <= now_utc + lead_time:
        raise LeadTimeTooShort(
            "Same-day pickups must be more than "
            f"{_format_lead(lead_time)} from now."
        )
    return candidate


def try_resolve(
    day: Union[ScheduleDay, str],
    hour: TimeComponent,
    minute: TimeComponent,
    now: datetime,
    lead_time: timedelta = DEFAULT_LEAD_TIME,
) -> ScheduledTimeResult:
    """Same as :func:`resolve` but reports a rejection as a value."""
    try:
        resolved = resolve(day, hour, minute, now, lead_time)
    except ScheduleError as exc:
        return ScheduledTimeResult(
            error_code=exc.code,
            message=exc.message,
            field=getattr(exc, "field", None),
        )
    return ScheduledTimeResult(scheduled_time=resolved)


def earliest_today(
    now: datetime, lead_time: timedelta = DEFAULT_LEAD_TIME
) -> Optional[datetime]:
    """First whole minute that ``today`` would accept, in ``now``'s zone.

    ``None`` when the lead time already pushes past midnight.
    """
    now = _aware(now)
    floor = (now.astimezone(timezone.utc) + lead_time).replace(
        second=0, microsecond=0
    )
    earliest = (floor + timedelta(minutes=1)).astimezone(now.tzinfo)
    if earliest.date() != now.date():
        return None
    return earliest


def describe(
    scheduled_time: datetime, now: datetime
) -> Optional[ScheduledTimeInput]:
    """Map a stored timestamp back to the form's day / hour / minute.

    Returns ``None`` when it is neither today nor tomorrow.
    """
    now = _aware(now)
    local = _aware(scheduled_time).astimezone(now.tzinfo)
    if local.date() == now.date():
        day = ScheduleDay.TODAY
    elif local.date() == now.date() + timedelta(days=1):
        day = ScheduleDay.TOMORROW
    else:
        return None
    return ScheduledTimeInput(day=day, hour=local.hour, minute=local.minute)


def to_iso(value: datetime) -> str:
    """ISO-8601 in UTC with a ``Z`` suffix, e.g. ``2024-01-01T13:01:00Z``."""
    return _aware(value).astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ── Internals ─────────────────────────────────────────────────────────


def _parse_day(day: Union[ScheduleDay, str]) -> ScheduleDay:
    try:
        return ScheduleDay(day)
    except ValueError:
        raise InvalidTimeComponent(
            "day", "Day must be either 'today' or 'tomorrow'"
        ) from None


def _parse_component(
    value: TimeComponent, field: str, upper: int, message: str
) -> int:
    # bool is an int subclass; a checkbox value is never a valid hour
    if isinstance(value, bool):
        raise InvalidTimeComponent(field, message)
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
        number = int(value.strip())
    else:
        raise InvalidTimeComponent(field, message)
    if not 0 <= number <= upper:
        raise InvalidTimeComponent(field, message)
    return number


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _at(day: date, hour: int, minute: int, tz: Optional[tzinfo]) -> datetime:
    candidate = datetime.combine(day, time(hour, minute), tzinfo=tz)
    # Wall times inside a spring-forward gap do not survive a UTC round trip
    wall = candidate.astimezone(timezone.utc).astimezone(tz)
    if wall.replace(tzinfo=None) != candidate.replace(tzinfo=None):
        raise InvalidTimeComponent(
            "hour", "This time does not exist on that day (clocks go forward)"
        )
    return candidate


def _format_lead(lead_time: timedelta) -> str:
    minutes = int(lead_time.total_seconds() // 60)
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"
