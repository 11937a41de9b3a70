"""In-process challenge store.

Used when Redis is not configured (single worker deployments, tests).
One asyncio.Lock serialises every read-modify-write, which is what makes
``mutate`` a compare-and-set per challenge id.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional

from infrastructure.captcha.protocol import T, Transition
from schemas.models.challenge import Challenge, ChallengeState, VerificationToken
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)


class MemoryChallengeStore:
    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._challenges: dict[str, Challenge] = {}
        self._tokens: dict[str, VerificationToken] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [k for k, c in self._challenges.items() if c.is_expired(now)]
        for key in expired:
            del self._challenges[key]
        stale_tokens = [k for k, t in self._tokens.items() if t.is_expired(now)]
        for key in stale_tokens:
            del self._tokens[key]
        if expired or stale_tokens:
            log.debug(
                "captcha_memory_purge",
                challenges=len(expired),
                tokens=len(stale_tokens),
            )

    async def save(self, challenge: Challenge) -> None:
        async with self._lock:
            self._purge_expired()
            self._challenges[challenge.id] = challenge.model_copy(deep=True)

    async def get(self, challenge_id: str) -> Optional[Challenge]:
        async with self._lock:
            self._purge_expired()
            challenge = self._challenges.get(challenge_id)
            return challenge.model_copy(deep=True) if challenge else None

    async def mutate(self, challenge_id: str, transition: Transition[T]) -> T:
        async with self._lock:
            self._purge_expired()
            stored = self._challenges.get(challenge_id)
            current = stored.model_copy(deep=True) if stored else None
            updated, result = transition(current)
            if updated is current:
                return result
            if updated is None:
                self._challenges.pop(challenge_id, None)
            else:
                self._challenges[challenge_id] = updated.model_copy(deep=True)
            return result

    async def save_token(self, token: VerificationToken) -> None:
        async with self._lock:
            self._tokens[token.value] = token.model_copy(deep=True)

    async def pop_token(self, value: str) -> Optional[VerificationToken]:
        async with self._lock:
            self._purge_expired()
            return self._tokens.pop(value, None)

    async def stats(self) -> dict[str, int]:
        async with self._lock:
            self._purge_expired()
            states = [c.state for c in self._challenges.values()]
        return {
            "active": states.count(ChallengeState.CREATED),
            "verified": states.count(ChallengeState.VERIFIED),
            "exhausted": states.count(ChallengeState.EXHAUSTED),
        }

    async def ping(self) -> bool:
        return True
