"""FastAPI dependency injection helpers."""

from datetime import timedelta
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bombily.config import settings
from bombily.domain.clock import Clock, SystemClock
from bombily.domain.entities import Actor
from bombily.domain.enums import UserRole
from bombily.infrastructure.database import async_session_factory
from bombily.infrastructure.events import RedisOrderEventPublisher
from bombily.infrastructure.redis_client import get_redis
from bombily.infrastructure.repositories import UserRepository
from bombily.services.directory import DirectoryService
from bombily.services.lifecycle import EventPublisher, OrderLifecycleService

_clock = SystemClock(settings.civil_timezone)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_clock() -> Clock:
    return _clock


def get_lead_time() -> timedelta:
    return timedelta(minutes=settings.schedule_lead_time_minutes)


async def get_event_publisher() -> EventPublisher:
    return RedisOrderEventPublisher(
        await get_redis(), settings.order_events_channel
    )


async def get_actor(
    x_user_id: Optional[int] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """Resolve the user id forwarded by the auth layer into an ``Actor``."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    user = await UserRepository(db).get_by_id(x_user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return Actor(user_id=user.id, role=UserRole(user.role), city_id=user.city_id)


async def get_lifecycle_service(
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
    clock: Clock = Depends(get_clock),
    lead_time: timedelta = Depends(get_lead_time),
) -> AsyncGenerator[OrderLifecycleService, None]:
    """Commit before the change feed hears about anything."""
    service = OrderLifecycleService(
        db,
        publisher,
        clock,
        lead_time=lead_time,
        publish_timeout=settings.publish_timeout_seconds,
    )
    yield service
    await service.commit()


def get_directory_service(
    db: AsyncSession = Depends(get_db),
) -> DirectoryService:
    return DirectoryService(db)
