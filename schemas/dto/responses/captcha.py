"""
Response DTOs for the captcha endpoints.

PublicCircle / PublicChallenge are the only captcha shapes that cross the
HTTP boundary. ``extra="forbid"`` keeps a stray ``is_broken`` or
``correct_index`` from being smuggled in through model_validate().
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PublicCircle(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    id: int
    x: int
    y: int
    radius: int


class PublicChallenge(BaseModel):
    """Response data for POST /api/captcha/create."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    captcha_id: str = Field(alias="captchaId")
    circles: list[PublicCircle]
    width: int
    height: int
    image: str  # data:image/png;base64,...
    expires_at: datetime = Field(alias="expiresAt")


class VerifyCaptchaResponse(BaseModel):
    """Response data for a successful POST /api/captcha/verify."""

    model_config = ConfigDict(populate_by_name=True)

    verified: bool = True
    token: str


class CaptchaStatsResponse(BaseModel):
    """Response data for GET /api/captcha/stats."""

    model_config = ConfigDict(populate_by_name=True)

    active_captchas: int = Field(alias="activeCaptchas")
    verified_count: int = Field(alias="verifiedCount")
    exhausted_count: int = Field(alias="exhaustedCount")
