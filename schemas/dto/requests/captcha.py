"""Request DTOs for the captcha endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class VerifyCaptchaRequest(BaseModel):
    """Request body for POST /api/captcha/verify.

    ``selectedIndex`` must be a real JSON integer; ``"2"`` or ``true`` are
    rejected rather than coerced.
    """

    model_config = ConfigDict(populate_by_name=True)

    captcha_id: str = Field(alias="captchaId", min_length=1, max_length=128)
    selected_index: StrictInt = Field(alias="selectedIndex", ge=0)
