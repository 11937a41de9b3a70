"""Pick the challenge store backend from settings."""

from typing import Optional

import redis.asyncio as aioredis

from config import CaptchaSettings
from infrastructure.captcha.memory_store import MemoryChallengeStore
from infrastructure.captcha.protocol import ChallengeStore
from infrastructure.captcha.redis_store import RedisChallengeStore
from shared.logging import get_logger

log = get_logger(__name__)


def build_challenge_store(
    settings: CaptchaSettings, redis_client: Optional[aioredis.Redis]
) -> ChallengeStore:
    """Return the store named by ``captcha_store``.

    ``redis`` without a reachable Redis is a configuration error; ``auto``
    quietly falls back to memory, which is only correct for one worker.
    """
    backend = settings.captcha_store
    if backend == "redis" and redis_client is None:
        raise RuntimeError("CAPTCHA_STORE=redis requires a reachable REDIS_URI")
    if backend in ("redis", "auto") and redis_client is not None:
        log.info("captcha_store_selected", backend="redis")
        return RedisChallengeStore(redis_client)
    log.info("captcha_store_selected", backend="memory")
    return MemoryChallengeStore()
