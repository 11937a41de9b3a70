"""
FastAPI dependency providers.

Long-lived resources (settings, Mongo database, Redis, challenge store,
user repository, rate limiter) live on app.state and are created by
create_app() and its lifespan in app.py. Services are cheap and built per request from those resources.
"""

from __future__ import annotations

from fastapi import Depends, Request

from config import AppSettings
from errors import AuthenticationError, ForbiddenError
from infrastructure.captcha.protocol import ChallengeStore
from infrastructure.rate_limiter import RateLimiter
from repositories.user_repository import UserRepository
from schemas.models.user import UserDoc
from services.auth_service import AuthService
from services.captcha_service import CaptchaService
from shared.ip_utils import get_client_ip


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_challenge_store(request: Request) -> ChallengeStore:
    return request.app.state.challenge_store


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository


def rate_limit(group: str):
    """Dependency counting the request against the *group* limit for its IP."""

    async def _check(request: Request) -> None:
        limiter: RateLimiter = request.app.state.rate_limiter
        await limiter.check(group, get_client_ip(request))

    return _check


def get_captcha_service(
    store: ChallengeStore = Depends(get_challenge_store),
    settings: AppSettings = Depends(get_settings),
) -> CaptchaService:
    return CaptchaService(store, settings.captcha)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    captcha: CaptchaService = Depends(get_captcha_service),
    settings: AppSettings = Depends(get_settings),
) -> AuthService:
    return AuthService(users, captcha, settings.jwt)


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Giriş yapmanız gerekiyor")
    return token.strip()


async def get_current_user(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> UserDoc:
    """Resolve the bearer token on the request to a user (401 otherwise)."""
    return await auth.authenticate(_bearer_token(request))


async def require_admin(user: UserDoc = Depends(get_current_user)) -> UserDoc:
    if not user.is_admin:
        raise ForbiddenError("Admin yetkisi gerekiyor")
    return user
