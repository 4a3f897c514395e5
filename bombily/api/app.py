"""
FastAPI application factory.

* Registers routes for orders, scheduling, cities and admin.
* Starts / stops the background notification worker via lifespan events.
* Translates domain errors into JSON responses with a stable ``code``.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from bombily.api.middleware import limiter
from bombily.api.routes import admin, cities, orders, schedule
from bombily.config import settings
from bombily.domain.errors import (
    BombilyError,
    CityNotFound,
    CollaboratorUnavailable,
    DirectoryError,
    Forbidden,
    NotAssigned,
    OrderError,
    OrderNotFound,
    ProposalNotFound,
    ScheduleError,
    ShopNotFound,
    UserNotFound,
)
from bombily.infrastructure.database import dispose_engine
from bombily.infrastructure.redis_client import close_redis
from bombily.services.lifecycle import drain_publishes
from bombily.workers import notifier as _notifier

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# First match wins, so subclasses come before their bases.
_ERROR_STATUS: list[tuple[type[BombilyError], int]] = [
    (ScheduleError, 422),
    (NotAssigned, 403),
    (Forbidden, 403),
    (OrderNotFound, 404),
    (ShopNotFound, 404),
    (CityNotFound, 404),
    (UserNotFound, 404),
    (ProposalNotFound, 404),
    (OrderError, 409),
    (DirectoryError, 409),
    (CollaboratorUnavailable, 503),
]


async def bombily_error_handler(request: Request, exc: BombilyError) -> JSONResponse:
    status = next(
        (code for kind, code in _ERROR_STATUS if isinstance(exc, kind)), 400
    )
    if status >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    body = {"detail": exc.message, "code": exc.code}
    field = getattr(exc, "field", None)
    if field:
        body["field"] = field
    return JSONResponse(status_code=status, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the notification worker on startup; stop on shutdown."""
    if settings.notifier_enabled:
        await _notifier.start_notifier_loop()
    yield
    if settings.notifier_enabled:
        await _notifier.stop_notifier_loop()
    await drain_publishes()
    await close_redis()
    await dispose_engine()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Bombily Orders API",
        description=(
            "Taxi, cargo and local delivery orders for passengers and "
            "drivers.  Validates scheduled pickups, enforces the order "
            "lifecycle and streams status changes as spoken notifications."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(BombilyError, bombily_error_handler)

    # Routers
    app.include_router(orders.router, prefix="/api/v1")
    app.include_router(schedule.router, prefix="/api/v1")
    app.include_router(cities.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
