"""
Scheduling endpoint
===================

POST /api/v1/schedule/resolve -- validate a day / hour / minute choice

Called by the order form on every change of the picker, so it is cheap and
has no side effects.  A rejected choice comes back as 422 with a ``code``
(``invalid_time_component``, ``time_already_passed``,
``lead_time_too_short``) and, for malformed input, the offending ``field``.
"""

from datetime import timedelta

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from bombily.api.dependencies import get_clock, get_lead_time
from bombily.api.middleware import limiter
from bombily.api.schemas import (
    ErrorResponse,
    ScheduleRequest,
    ScheduleResolveResponse,
)
from bombily.config import settings
from bombily.domain.clock import Clock
from bombily.domain.scheduling import earliest_today, try_resolve

router = APIRouter(prefix="/schedule", tags=["schedule"])


@router.post(
    "/resolve",
    response_model=ScheduleResolveResponse,
    summary="Resolve a scheduled pickup time",
    responses={422: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def resolve_schedule(
    request: Request,
    body: ScheduleRequest,
    clock: Clock = Depends(get_clock),
    lead_time: timedelta = Depends(get_lead_time),
):
    now = clock.now()
    result = try_resolve(body.day, body.hour, body.minute, now, lead_time)
    if not result.ok:
        error = ErrorResponse(
            detail=result.message, code=result.error_code, field=result.field
        )
        return JSONResponse(
            status_code=422, content=error.model_dump(exclude_none=True)
        )
    return ScheduleResolveResponse(
        scheduled_time=result.scheduled_time,
        earliest_today=earliest_today(now, lead_time),
    )
