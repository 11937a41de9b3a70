"""Redis-backed challenge store.

Challenges and verification tokens are JSON strings with a TTL matching
their ``expires_at``. ``mutate`` is an optimistic transaction
(WATCH / MULTI / EXEC): if another request touches the key between the read
and the write, EXEC fails with WatchError and the transition is re-run
against the fresh value. Token consumption uses GETDEL, so a token can be
handed out at most once.
"""

from datetime import datetime
from typing import Callable, Optional

import redis.asyncio as aioredis
from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError, WatchError

from infrastructure.captcha.protocol import ChallengeStoreError, T, Transition
from schemas.models.challenge import Challenge, ChallengeState, VerificationToken
from shared.datetime_utils import seconds_until, utcnow
from shared.logging import get_logger

log = get_logger(__name__)

CHALLENGE_PREFIX = "captcha:challenge:"
TOKEN_PREFIX = "captcha:token:"


class RedisChallengeStore:
    def __init__(
        self,
        redis_client: aioredis.Redis,
        clock: Callable[[], datetime] = utcnow,
        max_retries: int = 5,
    ) -> None:
        self._redis = redis_client
        self._clock = clock
        self.max_retries = max_retries

    def _challenge_key(self, challenge_id: str) -> str:
        return f"{CHALLENGE_PREFIX}{challenge_id}"

    def _token_key(self, value: str) -> str:
        return f"{TOKEN_PREFIX}{value}"

    def _ttl(self, expires_at: datetime) -> int:
        # SET with ex=0 is rejected by Redis
        return max(1, seconds_until(expires_at, self._clock()))

    def _load(self, raw: Optional[str]) -> Optional[Challenge]:
        if not raw:
            return None
        try:
            return Challenge.model_validate_json(raw)
        except PydanticValidationError as e:
            log.warning("captcha_record_corrupt", error=str(e))
            return None

    async def save(self, challenge: Challenge) -> None:
        try:
            await self._redis.set(
                self._challenge_key(challenge.id),
                challenge.model_dump_json(),
                ex=self._ttl(challenge.expires_at),
            )
        except RedisError as e:
            raise ChallengeStoreError(str(e)) from e

    async def get(self, challenge_id: str) -> Optional[Challenge]:
        try:
            raw = await self._redis.get(self._challenge_key(challenge_id))
        except RedisError as e:
            raise ChallengeStoreError(str(e)) from e
        return self._load(raw)

    async def mutate(self, challenge_id: str, transition: Transition[T]) -> T:
        key = self._challenge_key(challenge_id)
        for attempt in range(self.max_retries):
            try:
                async with self._redis.pipeline(transaction=True) as pipe:
                    await pipe.watch(key)
                    current = self._load(await pipe.get(key))
                    updated, result = transition(current)
                    if updated is current:
                        await pipe.unwatch()
                        return result
                    pipe.multi()
                    if updated is None:
                        pipe.delete(key)
                    else:
                        pipe.set(
                            key,
                            updated.model_dump_json(),
                            ex=self._ttl(updated.expires_at),
                        )
                    await pipe.execute()
                    return result
            except WatchError:
                log.debug(
                    "captcha_cas_conflict", challenge_id=challenge_id, attempt=attempt
                )
                continue
            except RedisError as e:
                raise ChallengeStoreError(str(e)) from e
        raise ChallengeStoreError(
            f"gave up after {self.max_retries} concurrent modifications"
        )

    async def save_token(self, token: VerificationToken) -> None:
        try:
            await self._redis.set(
                self._token_key(token.value),
                token.model_dump_json(),
                ex=self._ttl(token.expires_at),
            )
        except RedisError as e:
            raise ChallengeStoreError(str(e)) from e

    async def pop_token(self, value: str) -> Optional[VerificationToken]:
        try:
            raw = await self._redis.getdel(self._token_key(value))
        except RedisError as e:
            raise ChallengeStoreError(str(e)) from e
        if not raw:
            return None
        try:
            return VerificationToken.model_validate_json(raw)
        except PydanticValidationError as e:
            log.warning("captcha_token_corrupt", error=str(e))
            return None

    async def stats(self) -> dict[str, int]:
        counts = {"active": 0, "verified": 0, "exhausted": 0}
        try:
            async for key in self._redis.scan_iter(match=f"{CHALLENGE_PREFIX}*"):
                challenge = self._load(await self._redis.get(key))
                if challenge is None:
                    continue
                if challenge.state is ChallengeState.CREATED:
                    counts["active"] += 1
                elif challenge.state is ChallengeState.VERIFIED:
                    counts["verified"] += 1
                else:
                    counts["exhausted"] += 1
        except RedisError as e:
            raise ChallengeStoreError(str(e)) from e
        return counts

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False
