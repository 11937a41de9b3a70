"""
Broken-circle captcha: challenge generation, verification and token checks.

Layout: a 360x240 canvas split into a 3x3 grid of 120x80 cells. Each circle
sits in its own cell with a small jitter; with radii of 20-26 px two circles
are always at least 68 px apart centre to centre and stay inside the canvas.
``is_valid_layout`` still checks both properties before a challenge is
issued.

All randomness comes from ``secrets.SystemRandom`` unless a generator is
injected (tests).
"""

from __future__ import annotations

import random
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional, Sequence

from config import CaptchaSettings
from errors import ServiceUnavailableError
from infrastructure.captcha.protocol import ChallengeStore, ChallengeStoreError
from infrastructure.captcha.renderer import png_data_url, render_challenge_png
from schemas.dto.responses.captcha import (
    CaptchaStatsResponse,
    PublicChallenge,
    PublicCircle,
)
from schemas.models.challenge import (
    Challenge,
    ChallengeState,
    Circle,
    VerificationToken,
)
from shared.datetime_utils import utcnow
from shared.generators import generate_challenge_id, generate_verification_token
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)

CANVAS_WIDTH = 360
CANVAS_HEIGHT = 240
GRID_COLS = 3
GRID_ROWS = 3
CELL_WIDTH = CANVAS_WIDTH // GRID_COLS
CELL_HEIGHT = CANVAS_HEIGHT // GRID_ROWS
JITTER_X = 12
JITTER_Y = 6
MIN_RADIUS = 20
MAX_RADIUS = 26

_MAX_LAYOUT_TRIES = 10

INVALID_CHALLENGE_MESSAGE = "Geçersiz veya süresi dolmuş CAPTCHA"
TOO_MANY_ATTEMPTS_MESSAGE = "Çok fazla yanlış deneme. Yeni CAPTCHA alın."
WRONG_SELECTION_MESSAGE = "Yanlış seçim. {remaining} deneme hakkınız kaldı."


class VerifyOutcome(str, Enum):
    VERIFIED = "verified"
    WRONG = "wrong"
    EXHAUSTED = "exhausted"
    INVALID = "invalid"


@dataclass(frozen=True)
class VerifyResult:
    outcome: VerifyOutcome
    token: Optional[str] = None
    remaining_attempts: int = 0

    @property
    def success(self) -> bool:
        return self.outcome is VerifyOutcome.VERIFIED

    @property
    def message(self) -> str:
        if self.outcome is VerifyOutcome.VERIFIED:
            return "CAPTCHA başarıyla doğrulandı"
        if self.outcome is VerifyOutcome.WRONG:
            return WRONG_SELECTION_MESSAGE.format(remaining=self.remaining_attempts)
        if self.outcome is VerifyOutcome.EXHAUSTED:
            return TOO_MANY_ATTEMPTS_MESSAGE
        return INVALID_CHALLENGE_MESSAGE


# ── Layout ───────────────────────────────────────────────────────────────────


def layout_circles(count: int, rng: random.Random) -> list[Circle]:
    """Place *count* circles in distinct grid cells, exactly one broken."""
    if not 1 <= count <= GRID_COLS * GRID_ROWS:
        raise ValueError(f"circle count must be 1..{GRID_COLS * GRID_ROWS}")

    cells = [(col, row) for row in range(GRID_ROWS) for col in range(GRID_COLS)]
    rng.shuffle(cells)
    broken_index = rng.randrange(count)

    circles: list[Circle] = []
    for index, (col, row) in enumerate(cells[:count]):
        is_broken = index == broken_index
        circles.append(
            Circle(
                id=index,
                x=col * CELL_WIDTH + CELL_WIDTH // 2 + rng.randint(-JITTER_X, JITTER_X),
                y=row * CELL_HEIGHT
                + CELL_HEIGHT // 2
                + rng.randint(-JITTER_Y, JITTER_Y),
                radius=rng.randint(MIN_RADIUS, MAX_RADIUS),
                is_broken=is_broken,
                gap_rotation_degrees=rng.randrange(360) if is_broken else 0,
            )
        )
    return circles


def circles_overlap(a: Circle, b: Circle) -> bool:
    dx = a.x - b.x
    dy = a.y - b.y
    reach = a.radius + b.radius
    return dx * dx + dy * dy < reach * reach


def fits_canvas(circle: Circle, width: int, height: int) -> bool:
    return (
        circle.x - circle.radius >= 0
        and circle.y - circle.radius >= 0
        and circle.x + circle.radius <= width
        and circle.y + circle.radius <= height
    )


def is_valid_layout(circles: Sequence[Circle], width: int, height: int) -> bool:
    if sum(1 for c in circles if c.is_broken) != 1:
        return False
    if not all(fits_canvas(c, width, height) for c in circles):
        return False
    return not any(
        circles_overlap(a, b)
        for i, a in enumerate(circles)
        for b in circles[i + 1 :]
    )


# ── State transition ─────────────────────────────────────────────────────────


def apply_attempt(
    challenge: Optional[Challenge],
    selected_index: int,
    now: datetime,
    max_attempts: int,
) -> tuple[Optional[Challenge], VerifyResult]:
    """Pure state transition for one verification attempt.

    Returns the record to store (the same object when nothing changes) and
    the outcome. Missing, expired, verified and exhausted challenges all
    produce INVALID.
    """
    if challenge is None or not challenge.accepts_attempts(now):
        return challenge, VerifyResult(VerifyOutcome.INVALID)

    if selected_index == challenge.correct_index:
        verified = challenge.model_copy(update={"state": ChallengeState.VERIFIED})
        return verified, VerifyResult(VerifyOutcome.VERIFIED)

    attempts = challenge.attempts + 1
    if attempts >= max_attempts:
        exhausted = challenge.model_copy(
            update={"attempts": attempts, "state": ChallengeState.EXHAUSTED}
        )
        return exhausted, VerifyResult(VerifyOutcome.EXHAUSTED)

    wrong = challenge.model_copy(update={"attempts": attempts})
    return wrong, VerifyResult(
        VerifyOutcome.WRONG, remaining_attempts=max_attempts - attempts
    )


# ── Service ──────────────────────────────────────────────────────────────────


class CaptchaService:
    def __init__(
        self,
        store: ChallengeStore,
        settings: CaptchaSettings,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
        renderer: Callable[[Sequence[Circle], int, int], bytes] = render_challenge_png,
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock
        self._rng = rng or secrets.SystemRandom()
        self._render = renderer

    def _generate(self, ip: Optional[str]) -> Challenge:
        count = self._rng.randint(
            self._settings.captcha_min_circles, self._settings.captcha_max_circles
        )
        for _ in range(_MAX_LAYOUT_TRIES):
            circles = layout_circles(count, self._rng)
            if is_valid_layout(circles, CANVAS_WIDTH, CANVAS_HEIGHT):
                break
        else:
            log.error("captcha_layout_failed", circles=count)
            raise ServiceUnavailableError("CAPTCHA oluşturulamadı")

        now = self._clock()
        correct_index = next(c.id for c in circles if c.is_broken)
        return Challenge(
            id=generate_challenge_id(),
            circles=circles,
            correct_index=correct_index,
            width=CANVAS_WIDTH,
            height=CANVAS_HEIGHT,
            ip=ip,
            created_at=now,
            expires_at=now + timedelta(seconds=self._settings.captcha_ttl_seconds),
        )

    async def create(self, ip: Optional[str] = None) -> PublicChallenge:
        """Issue a new challenge and return its public view.

        Raises:
            ServiceUnavailableError: the challenge could not be rendered or
                stored; nothing is returned to the client in that case.
        """
        challenge = self._generate(ip)
        try:
            image = png_data_url(
                self._render(challenge.circles, challenge.width, challenge.height)
            )
            await self._store.save(challenge)
        except (ChallengeStoreError, OSError) as e:
            log.error(
                "captcha_create_failed", error=str(e), error_type=type(e).__name__
            )
            raise ServiceUnavailableError("CAPTCHA oluşturulamadı") from e

        log.info(
            "captcha_created",
            captcha_id=challenge.id,
            circles=len(challenge.circles),
            ip_hash=hash_ip(ip),
        )
        return PublicChallenge(
            captcha_id=challenge.id,
            circles=[
                PublicCircle(id=c.id, x=c.x, y=c.y, radius=c.radius)
                for c in challenge.circles
            ],
            width=challenge.width,
            height=challenge.height,
            image=image,
            expires_at=challenge.expires_at,
        )

    async def verify(self, challenge_id: str, selected_index: int) -> VerifyResult:
        """Check one selection; at most one call per challenge can succeed."""
        now = self._clock()
        max_attempts = self._settings.captcha_max_attempts
        try:
            result = await self._store.mutate(
                challenge_id,
                lambda current: apply_attempt(
                    current, selected_index, now, max_attempts
                ),
            )
        except ChallengeStoreError as e:
            log.error("captcha_verify_store_error", error=str(e))
            raise ServiceUnavailableError("CAPTCHA doğrulanamadı") from e

        if not result.success:
            log.info(
                "captcha_verify_failed",
                captcha_id=challenge_id,
                outcome=result.outcome.value,
            )
            return result

        token = VerificationToken(
            value=generate_verification_token(),
            challenge_id=challenge_id,
            issued_at=now,
            expires_at=now
            + timedelta(seconds=self._settings.captcha_token_ttl_seconds),
        )
        try:
            await self._store.save_token(token)
        except ChallengeStoreError as e:
            log.error("captcha_token_store_error", error=str(e))
            raise ServiceUnavailableError("CAPTCHA doğrulanamadı") from e

        log.info("captcha_verified", captcha_id=challenge_id)
        return replace(result, token=token.value)

    async def consume_token(self, value: Optional[str]) -> bool:
        """Accept a verification token once. Unknown or expired tokens fail."""
        if not value:
            return False
        try:
            token = await self._store.pop_token(value)
        except ChallengeStoreError as e:
            log.error("captcha_token_consume_error", error=str(e))
            raise ServiceUnavailableError("CAPTCHA doğrulama hatası") from e
        if token is None:
            return False
        if token.is_expired(self._clock()):
            log.info("captcha_token_expired", captcha_id=token.challenge_id)
            return False
        return True

    async def stats(self) -> CaptchaStatsResponse:
        try:
            counts = await self._store.stats()
        except ChallengeStoreError as e:
            raise ServiceUnavailableError("İstatistikler alınamadı") from e
        return CaptchaStatsResponse(
            active_captchas=counts["active"],
            verified_count=counts["verified"],
            exhausted_count=counts["exhausted"],
        )
