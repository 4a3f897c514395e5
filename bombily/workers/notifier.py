"""
Background Notification Worker
==============================

Consumes the order change feed and turns each change into (at most one)
spoken notification for the counterpart of whoever caused it.

Delivery semantics
------------------
* **Reconnect on drop** -- if the Redis connection is lost, the worker
  waits ``notifier_reconnect_seconds`` and subscribes again.
* **Idempotent handling** -- every event is claimed by ``event_id``
  through ``EventDeduplicator`` first; a redelivered event is ignored.
* **Fire-and-forget dispatch** -- speaking runs in its own task; a failed
  publish is logged and never blocks the next event.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from pydantic import ValidationError
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from bombily.config import settings
from bombily.domain.notifications import Notification, notifications_for
from bombily.infrastructure.events import EventDeduplicator, OrderChangeEvent
from bombily.infrastructure.redis_client import get_redis
from bombily.infrastructure.speech import RedisSpeaker

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None
_dispatches: set[asyncio.Task] = set()


class Speaker(Protocol):
    async def speak(self, audience: str, text: str) -> None: ...


class Deduplicator(Protocol):
    async def claim(self, event_id: str) -> bool: ...


# ── Public API ────────────────────────────────────────────────────────


async def start_notifier_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Notification worker started (channel=%s)", settings.order_events_channel
    )


async def stop_notifier_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    await wait_for_dispatches()
    logger.info("Notification worker stopped")


async def wait_for_dispatches() -> None:
    """Wait until every in-flight notification has been handed off."""
    if _dispatches:
        await asyncio.gather(*list(_dispatches), return_exceptions=True)


async def handle_message(
    raw: str | bytes, dedup: Deduplicator, speaker: Speaker
) -> list[Notification]:
    try:
        event = OrderChangeEvent.model_validate_json(raw)
    except ValidationError:
        logger.warning("Dropping malformed order event: %r", raw)
        return []
    return await handle_event(event, dedup, speaker)


async def handle_event(
    event: OrderChangeEvent, dedup: Deduplicator, speaker: Speaker
) -> list[Notification]:
    """Process one change event; returns the notifications dispatched."""
    if not await dedup.claim(event.event_id):
        logger.debug("Ignoring redelivered event %s", event.event_id)
        return []

    notes = notifications_for(
        event.kind,
        event.order.to_entity(),
        old_status=event.old_status,
        actor_id=event.actor_id,
        previous_driver_id=event.previous_driver_id,
    )
    for note in notes:
        task = asyncio.create_task(_speak(speaker, note))
        _dispatches.add(task)
        task.add_done_callback(_dispatches.discard)
    return notes


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Subscribe, consume, and resubscribe after a dropped connection."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            client = await get_redis()
            await _consume(client, _stop_event)
        except (RedisConnectionError, OSError):
            logger.warning(
                "Order feed connection lost; reconnecting in %.1fs",
                settings.notifier_reconnect_seconds,
            )
        except Exception:
            logger.exception("Unhandled error in notification worker")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.notifier_reconnect_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # reconnect


async def _consume(client, stop_event: asyncio.Event) -> None:
    dedup = EventDeduplicator(client, settings.event_dedup_ttl_seconds)
    speaker = RedisSpeaker(client)
    pubsub = client.pubsub()
    await pubsub.subscribe(settings.order_events_channel)
    try:
        while not stop_event.is_set():
            message = await pubsub.get_message(
                ignore_subscribe_messages=True, timeout=1.0
            )
            if message is None:
                continue
            await handle_message(message["data"], dedup, speaker)
    finally:
        await pubsub.aclose()


async def _speak(speaker: Speaker, note: Notification) -> None:
    try:
        await speaker.speak(note.audience, note.text)
    except (RedisError, OSError):
        logger.warning("Failed to deliver notification to %s", note.audience)
