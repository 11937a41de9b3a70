"""
Broken-circle captcha endpoints.

POST /api/captcha/create  — issue a challenge (public view only)
POST /api/captcha/verify  — check a selection, return a verification token
GET  /api/captcha/stats   — challenge counts (admin)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from dependencies import get_captcha_service, rate_limit, require_admin
from errors import ValidationError
from schemas.dto.requests.captcha import VerifyCaptchaRequest
from schemas.dto.responses.captcha import (
    CaptchaStatsResponse,
    PublicChallenge,
    VerifyCaptchaResponse,
)
from schemas.dto.responses.common import ApiResponse, ErrorResponse
from schemas.models.user import UserDoc
from services.captcha_service import CaptchaService, VerifyOutcome
from shared.ip_utils import get_client_ip

router = APIRouter(
    prefix="/api/captcha",
    tags=["captcha"],
    dependencies=[Depends(rate_limit("api")), Depends(rate_limit("captcha"))],
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)


@router.post("/create", response_model=ApiResponse[PublicChallenge])
async def create_captcha(
    request: Request,
    captcha: CaptchaService = Depends(get_captcha_service),
) -> ApiResponse[PublicChallenge]:
    challenge = await captcha.create(ip=get_client_ip(request))
    return ApiResponse[PublicChallenge](data=challenge)


@router.post("/verify", response_model=ApiResponse[VerifyCaptchaResponse])
async def verify_captcha(
    body: VerifyCaptchaRequest,
    captcha: CaptchaService = Depends(get_captcha_service),
) -> ApiResponse[VerifyCaptchaResponse]:
    result = await captcha.verify(body.captcha_id, body.selected_index)
    if result.outcome is VerifyOutcome.WRONG:
        raise ValidationError(
            result.message,
            field="selectedIndex",
            details={"remainingAttempts": result.remaining_attempts},
        )
    if not result.success:
        # Exhausted or unusable challenge: the widget must fetch a new one
        raise ValidationError(result.message, details={"renew": True})
    return ApiResponse[VerifyCaptchaResponse](
        message=result.message,
        data=VerifyCaptchaResponse(token=result.token),
    )


@router.get("/stats", response_model=ApiResponse[CaptchaStatsResponse])
async def captcha_stats(
    _admin: UserDoc = Depends(require_admin),
    captcha: CaptchaService = Depends(get_captcha_service),
) -> ApiResponse[CaptchaStatsResponse]:
    return ApiResponse[CaptchaStatsResponse](data=await captcha.stats())
