"""
Access-token (JWT) helpers.

RS256 is used when both keys are configured, HS256 with ``JWT_SECRET``
otherwise. Keys passed through env vars may contain literal ``\\n``
sequences.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import jwt

from config import JWTSettings
from shared.datetime_utils import utcnow


def _signing_material(settings: JWTSettings) -> tuple[Any, Any, str]:
    if settings.use_rs256:
        private_key = settings.jwt_private_key.replace("\\n", "\n").encode("utf-8")
        public_key = settings.jwt_public_key.replace("\\n", "\n").encode("utf-8")
        return private_key, public_key, "RS256"
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET must be set when RS256 keys are not provided")
    return settings.jwt_secret, settings.jwt_secret, "HS256"


def generate_access_jwt(settings: JWTSettings, user_id: str, nickname: str) -> str:
    private_key, _, algorithm = _signing_material(settings)
    now = utcnow()
    claims = {
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "sub": str(user_id),
        "nickname": nickname,
        "iat": int(now.timestamp()),
        "exp": int(
            (now + timedelta(seconds=settings.access_token_ttl_seconds)).timestamp()
        ),
    }
    return jwt.encode(claims, private_key, algorithm=algorithm)


def verify_access_jwt(settings: JWTSettings, token: str) -> dict:
    """Decode and validate *token*.

    Raises:
        jwt.InvalidTokenError: bad signature, expired, wrong issuer/audience.
    """
    _, public_key, algorithm = _signing_material(settings)
    return jwt.decode(
        token,
        public_key,
        algorithms=[algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )
