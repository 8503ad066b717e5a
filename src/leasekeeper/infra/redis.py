"""Redis connection management.

Configuration via RedisConfig.
"""

import logging

import redis.asyncio as redis

from leasekeeper.app.config import get_settings
from leasekeeper.core.logging_schema import LogEvent

logger = logging.getLogger(__name__)


async def init_redis() -> redis.Redis:
    """Initialize Redis client. The lease store closes it."""
    settings = get_settings()
    url = str(settings.redis.url)
    max_connections = settings.redis.max_connections

    client = redis.from_url(
        url,
        decode_responses=True,
        max_connections=max_connections,
    )
    await client.ping()
    logger.info(
        "Redis connected: %s (max_connections=%d)",
        url,
        max_connections,
        extra={"event": LogEvent.STORE_CONNECTED},
    )
    return client
