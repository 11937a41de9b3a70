"""
Response DTOs for authentication endpoints.

UserResponse            — public user shape (login/register/profile)
AuthResponse            — POST /api/auth/login (200)
RegisterResponse        — POST /api/auth/register (201)
RecoverPasswordResponse — POST /api/auth/recover-password (200)
NicknameCheckResponse   — POST /api/auth/check-nickname (200)
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.user import UserDoc


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    nickname: str
    city: str
    is_admin: bool = Field(default=False, alias="isAdmin")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @classmethod
    def from_doc(cls, user: UserDoc) -> "UserResponse":
        return cls(
            id=str(user.id),
            nickname=user.nickname,
            city=user.city,
            is_admin=user.is_admin,
            created_at=user.created_at,
        )


class AuthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    user: UserResponse


class RegisterResponse(AuthResponse):
    recovery_code: str = Field(alias="recoveryCode")
    message: str = (
        "Bu kurtarma kodunu güvenli bir yerde saklayın! Tekrar gösterilmeyecektir."
    )


class RecoverPasswordResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_recovery_code: str = Field(alias="newRecoveryCode")
    message: str = "Yeni kurtarma kodunuzu güvenli bir yerde saklayın!"


class NicknameCheckResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nickname: str
    valid: bool
    available: bool
