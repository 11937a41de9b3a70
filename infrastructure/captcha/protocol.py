"""ChallengeStore protocol. The captcha service depends on this, not on a backend.

``mutate`` is the only way to change a stored challenge. The transition
callable receives the current record (or None) and returns
``(updated, result)``:

- return the same object to leave the record untouched,
- return None to delete it,
- return a new Challenge to store it (TTL follows its ``expires_at``).

Backends guarantee that transitions for one challenge id never interleave.
"""

from typing import Callable, Optional, Protocol, TypeVar

from schemas.models.challenge import Challenge, VerificationToken

T = TypeVar("T")

Transition = Callable[[Optional[Challenge]], tuple[Optional[Challenge], T]]


class ChallengeStoreError(Exception):
    """The backing store could not complete an operation."""


class ChallengeStore(Protocol):
    async def save(self, challenge: Challenge) -> None: ...

    async def get(self, challenge_id: str) -> Optional[Challenge]: ...

    async def mutate(self, challenge_id: str, transition: Transition[T]) -> T: ...

    async def save_token(self, token: VerificationToken) -> None: ...

    async def pop_token(self, value: str) -> Optional[VerificationToken]: ...

    async def stats(self) -> dict[str, int]: ...

    async def ping(self) -> bool: ...
