"""Async Redis connection factory.

Returns a connected client, or None when the connection fails; callers
fall back to the in-process captcha store in that case.
"""

from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shared.logging import get_logger

log = get_logger(__name__)


def _mask(redis_uri: str) -> str:
    return redis_uri.split("@")[-1]


async def create_redis_client(redis_uri: str) -> Optional[aioredis.Redis]:
    """Connect to *redis_uri* and ping it; None on any failure."""
    client: aioredis.Redis = aioredis.from_url(redis_uri, decode_responses=True)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        log.warning(
            "redis_connection_failed",
            uri=_mask(redis_uri),
            error=str(e),
            error_type=type(e).__name__,
        )
        await client.aclose()
        return None
    log.info("redis_connected", uri=_mask(redis_uri))
    return client
