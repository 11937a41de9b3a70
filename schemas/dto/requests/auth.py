"""
Request DTOs for authentication endpoints.

LoginRequest            — POST /api/auth/login
RegisterRequest         — POST /api/auth/register
RecoverPasswordRequest  — POST /api/auth/recover-password
CheckNicknameRequest    — POST /api/auth/check-nickname
UpdateProfileRequest    — PUT  /api/auth/profile

Field values are left loose here (empty defaults) so the auth service can
answer with its own Turkish validation messages after normalising input.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    model_config = ConfigDict(populate_by_name=True)

    nickname: str = ""
    password: str = ""
    captcha_token: Optional[str] = Field(default=None, alias="captchaToken")


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    model_config = ConfigDict(populate_by_name=True)

    nickname: str = ""
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")
    city: str = ""
    captcha_token: Optional[str] = Field(default=None, alias="captchaToken")


class RecoverPasswordRequest(BaseModel):
    """Request body for POST /api/auth/recover-password."""

    model_config = ConfigDict(populate_by_name=True)

    nickname: str = ""
    recovery_code: str = Field(default="", alias="recoveryCode")
    new_password: str = Field(default="", alias="newPassword")
    confirm_password: str = Field(default="", alias="confirmPassword")
    captcha_token: Optional[str] = Field(default=None, alias="captchaToken")


class CheckNicknameRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nickname: str = ""


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    city: str = ""
