"""Per-client request limits built on the ``limits`` library.

Each request is counted in a fixed window keyed by (group, client IP).
Groups:

- ``auth``     login / register / recover-password
- ``captcha``  every /api/captcha route
- ``api``      every /api route

Counters live in Redis when one is configured so all workers share them,
otherwise in process memory. A failing backend lets the request through.
"""

import math
import time
from typing import Optional

from limits import RateLimitItem, parse
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string
from redis.exceptions import RedisError

from config import RateLimitSettings
from errors import RateLimitError
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)

LIMIT_MESSAGES = {
    "auth": "Çok fazla giriş denemesi, lütfen daha sonra tekrar deneyin",
    "captcha": "CAPTCHA istekleri için çok fazla istek gönderdiniz",
    "api": "Çok fazla istek gönderdiniz, lütfen daha sonra tekrar deneyin",
}


class RateLimiter:
    def __init__(
        self,
        storage: Storage,
        limits: dict[str, RateLimitItem],
        enabled: bool = True,
    ) -> None:
        self._strategy = FixedWindowRateLimiter(storage)
        self._limits = limits
        self.enabled = enabled

    async def check(self, group: str, client_ip: str) -> None:
        """Count one request from *client_ip* against *group*.

        Raises:
            RateLimitError: the client has used up the current window.
        """
        if not self.enabled:
            return
        item = self._limits[group]
        try:
            if await self._strategy.hit(item, group, client_ip):
                return
            stats = await self._strategy.get_window_stats(item, group, client_ip)
        except (RedisError, OSError) as e:
            log.warning(
                "rate_limit_backend_failed",
                group=group,
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        log.info(
            "rate_limit_exceeded",
            group=group,
            ip=hash_ip(client_ip),
            retry_after=retry_after,
        )
        raise RateLimitError(LIMIT_MESSAGES[group], retry_after=retry_after)


def build_rate_limiter(
    settings: RateLimitSettings, redis_uri: Optional[str] = None
) -> RateLimiter:
    """Return a limiter whose storage follows RATE_LIMIT_STORAGE_URI / REDIS_URI."""
    if settings.rate_limit_storage_uri:
        storage = storage_from_string(settings.rate_limit_storage_uri)
        backend = "configured"
    elif redis_uri:
        storage = storage_from_string(f"async+{redis_uri}", implementation="redispy")
        backend = "redis"
    else:
        storage = MemoryStorage()
        backend = "memory"

    log.info(
        "rate_limiter_configured",
        backend=backend,
        enabled=settings.rate_limit_enabled,
    )
    return RateLimiter(
        storage,
        {
            "auth": parse(settings.auth_rate_limit),
            "captcha": parse(settings.captcha_rate_limit),
            "api": parse(settings.api_rate_limit),
        },
        enabled=settings.rate_limit_enabled,
    )
