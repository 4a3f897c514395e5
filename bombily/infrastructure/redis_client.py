"""
Redis connection shared by the change feed, the event de-duplicator and
the speech channel.

Both the request path (publishing) and the notifier worker (subscribing)
draw from one pool; socket timeouts keep a hung Redis from stalling a
request past ``publish_timeout_seconds``.
"""

import redis.asyncio as aioredis

from bombily.config import settings

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url,
    decode_responses=True,
    socket_connect_timeout=settings.redis_socket_timeout_seconds,
    health_check_interval=30,
)


async def get_redis() -> aioredis.Redis:
    return aioredis.Redis(connection_pool=_pool)


async def close_redis() -> None:
    await _pool.disconnect()
