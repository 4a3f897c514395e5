"""
Spoken-notification sink.

The service does not synthesise speech.  It publishes the text on a
per-audience channel (``speech:user:<id>`` / ``speech:city:<id>``); the
subscribed client app reads it aloud, or silently drops it when the
device has not granted audio permission.
"""

import logging

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class RedisSpeaker:
    def __init__(self, client: aioredis.Redis, prefix: str = "speech"):
        self.redis = client
        self.prefix = prefix

    async def speak(self, audience: str, text: str) -> None:
        receivers = await self.redis.publish(f"{self.prefix}:{audience}", text)
        logger.debug("Spoke to %s (%d receivers): %s", audience, receivers, text)
