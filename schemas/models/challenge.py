"""
Broken-circle captcha models (server-side view).

Challenge holds the answer (``correct_index``) and is only ever written to
the challenge store. What the client receives is the separate
PublicChallenge DTO in schemas/dto/responses/captcha.py, which has no field
able to carry the answer.

State machine::

    created --(wrong attempt)*--> exhausted
    created --------------------> verified
    created --------------------> expired   (time-based, not stored)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from shared.datetime_utils import ensure_utc


class ChallengeState(str, Enum):
    CREATED = "created"
    VERIFIED = "verified"
    EXHAUSTED = "exhausted"


class Circle(BaseModel):
    id: int = Field(ge=0)
    x: int
    y: int
    radius: int = Field(gt=0)
    is_broken: bool = False
    gap_rotation_degrees: int = Field(default=0, ge=0, lt=360)


class Challenge(BaseModel):
    id: str
    circles: list[Circle]
    correct_index: int
    width: int
    height: int
    ip: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    attempts: int = Field(default=0, ge=0)
    state: ChallengeState = ChallengeState.CREATED

    @model_validator(mode="after")
    def _exactly_one_broken(self) -> "Challenge":
        broken = [c.id for c in self.circles if c.is_broken]
        if len(broken) != 1:
            raise ValueError("a challenge must contain exactly one broken circle")
        if broken[0] != self.correct_index:
            raise ValueError("correct_index must point at the broken circle")
        return self

    @property
    def consumed(self) -> bool:
        return self.state is not ChallengeState.CREATED

    def is_expired(self, now: datetime) -> bool:
        return now >= ensure_utc(self.expires_at)

    def accepts_attempts(self, now: datetime) -> bool:
        return not self.consumed and not self.is_expired(now)


class VerificationToken(BaseModel):
    """Proof that a challenge was solved; accepted once by an auth endpoint."""

    value: str
    challenge_id: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= ensure_utc(self.expires_at)
