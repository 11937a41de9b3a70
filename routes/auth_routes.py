"""
Authentication endpoints.

login / register / recover-password require a captcha verification token
(``captchaToken``) obtained from POST /api/captcha/verify.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from dependencies import get_auth_service, get_current_user, rate_limit
from schemas.dto.requests.auth import (
    CheckNicknameRequest,
    LoginRequest,
    RecoverPasswordRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from schemas.dto.responses.auth import (
    AuthResponse,
    NicknameCheckResponse,
    RecoverPasswordResponse,
    RegisterResponse,
    UserResponse,
)
from schemas.dto.responses.common import ApiResponse, ErrorResponse
from schemas.models.user import UserDoc
from services.auth_service import AuthService

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
    dependencies=[Depends(rate_limit("api"))],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)

# Credential exchanges share the tighter per-IP limit
auth_limited = [Depends(rate_limit("auth"))]


@router.post(
    "/login", response_model=ApiResponse[AuthResponse], dependencies=auth_limited
)
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthResponse]:
    result = await auth.login(body)
    return ApiResponse[AuthResponse](message="Giriş başarılı", data=result)


@router.post(
    "/register",
    response_model=ApiResponse[RegisterResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=auth_limited,
)
async def register(
    body: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse[RegisterResponse]:
    result = await auth.register(body)
    return ApiResponse[RegisterResponse](message="Kayıt başarılı", data=result)


@router.post(
    "/recover-password",
    response_model=ApiResponse[RecoverPasswordResponse],
    dependencies=auth_limited,
)
async def recover_password(
    body: RecoverPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse[RecoverPasswordResponse]:
    result = await auth.recover_password(body)
    return ApiResponse[RecoverPasswordResponse](
        message="Şifre başarıyla sıfırlandı", data=result
    )


@router.post("/check-nickname", response_model=ApiResponse[NicknameCheckResponse])
async def check_nickname(
    body: CheckNicknameRequest,
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse[NicknameCheckResponse]:
    return ApiResponse[NicknameCheckResponse](
        data=await auth.check_nickname(body.nickname)
    )


@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(
    user: UserDoc = Depends(get_current_user),
) -> ApiResponse[UserResponse]:
    return ApiResponse[UserResponse](data=UserResponse.from_doc(user))


@router.put("/profile", response_model=ApiResponse[UserResponse])
async def update_profile(
    body: UpdateProfileRequest,
    user: UserDoc = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse[UserResponse]:
    updated = await auth.update_profile(user, body)
    return ApiResponse[UserResponse](message="Profil güncellendi", data=updated)
