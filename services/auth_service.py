"""
Nickname/password authentication for the storefront.

Every public entry point validates its input first, then spends the
captcha verification token, then touches user data. A rejected request
therefore never consumes a token, and a spent token is gone even when the
credentials turn out to be wrong.

Credential failures share one message so the endpoint cannot be used to
discover which nicknames exist.
"""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Callable, Optional

import jwt

from config import JWTSettings
from errors import AuthenticationError, ConflictError, ValidationError
from repositories.user_repository import DuplicateNicknameError, UserRepository
from schemas.dto.requests.auth import (
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
from schemas.models.user import UserDoc
from services.captcha_service import CaptchaService
from shared.crypto import hash_password, verify_password
from shared.datetime_utils import utcnow
from shared.generators import generate_recovery_code
from shared.logging import get_logger
from shared.tokens import generate_access_jwt, verify_access_jwt
from shared.validators import clean_text, validate_nickname, validate_password

log = get_logger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Geçersiz giriş bilgileri"
CAPTCHA_REQUIRED_MESSAGE = "CAPTCHA doğrulaması gereklidir"
CAPTCHA_FAILED_MESSAGE = "Geçersiz veya süresi dolmuş CAPTCHA token"
INVALID_SESSION_MESSAGE = "Geçersiz token"
NICKNAME_RULES_MESSAGE = (
    "Nickname 3-24 karakter olmalı ve sadece harf, rakam, altçizgi, "
    "nokta içermelidir"
)
PASSWORD_RULES_MESSAGE = "Şifre en az 6 karakter olmalıdır"
PASSWORD_MISMATCH_MESSAGE = "Şifreler eşleşmiyor"
CITY_REQUIRED_MESSAGE = "Şehir seçimi zorunludur"
NICKNAME_TAKEN_MESSAGE = "Bu nickname zaten kullanılıyor"
INVALID_RECOVERY_MESSAGE = "Geçersiz kurtarma bilgileri"


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Compared against when the nickname is unknown so both paths cost one argon2 verify
    return hash_password("bitki-store-timing-equaliser")


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        captcha: CaptchaService,
        jwt_settings: JWTSettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._users = users
        self._captcha = captcha
        self._jwt = jwt_settings
        self._clock = clock

    async def _require_captcha(self, captcha_token: Optional[str]) -> None:
        if not captcha_token:
            raise AuthenticationError(CAPTCHA_REQUIRED_MESSAGE, field="captchaToken")
        if not await self._captcha.consume_token(captcha_token):
            raise AuthenticationError(CAPTCHA_FAILED_MESSAGE, field="captchaToken")

    def _issue(self, user: UserDoc) -> str:
        return generate_access_jwt(self._jwt, str(user.id), user.nickname)

    async def register(self, req: RegisterRequest) -> RegisterResponse:
        nickname = clean_text(req.nickname)
        city = clean_text(req.city)
        password = clean_text(req.password)
        confirm = clean_text(req.confirm_password)

        if not validate_nickname(nickname):
            raise ValidationError(NICKNAME_RULES_MESSAGE, field="nickname")
        if not validate_password(password):
            raise ValidationError(PASSWORD_RULES_MESSAGE, field="password")
        if password != confirm:
            raise ValidationError(PASSWORD_MISMATCH_MESSAGE, field="confirmPassword")
        if not city:
            raise ValidationError(CITY_REQUIRED_MESSAGE, field="city")

        await self._require_captcha(req.captcha_token)

        if await self._users.find_by_nickname(nickname) is not None:
            raise ConflictError(NICKNAME_TAKEN_MESSAGE, field="nickname")

        recovery_code = generate_recovery_code()
        now = self._clock()
        try:
            user = await self._users.insert(
                UserDoc(
                    nickname=nickname,
                    password_hash=hash_password(password),
                    recovery_code_hash=hash_password(recovery_code),
                    city=city,
                    created_at=now,
                    updated_at=now,
                )
            )
        except DuplicateNicknameError:
            raise ConflictError(NICKNAME_TAKEN_MESSAGE, field="nickname")

        log.info("user_registered", user_id=str(user.id), nickname=nickname)
        return RegisterResponse(
            token=self._issue(user),
            user=UserResponse.from_doc(user),
            recovery_code=recovery_code,
        )

    async def login(self, req: LoginRequest) -> AuthResponse:
        nickname = clean_text(req.nickname)
        password = clean_text(req.password)
        if not nickname or not password:
            raise ValidationError("Nickname ve şifre gereklidir")

        await self._require_captcha(req.captcha_token)

        user = await self._users.find_by_nickname(nickname)
        if user is None:
            verify_password(password, _dummy_hash())
            log.info("user_login_failed", reason="unknown_nickname")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
        if not verify_password(password, user.password_hash):
            log.info("user_login_failed", reason="bad_password", user_id=str(user.id))
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        await self._users.record_login(user.id, self._clock())
        log.info("user_login", user_id=str(user.id), is_admin=user.is_admin)
        return AuthResponse(token=self._issue(user), user=UserResponse.from_doc(user))

    async def recover_password(
        self, req: RecoverPasswordRequest
    ) -> RecoverPasswordResponse:
        nickname = clean_text(req.nickname)
        recovery_code = clean_text(req.recovery_code)
        new_password = clean_text(req.new_password)
        confirm = clean_text(req.confirm_password)

        if not all((nickname, recovery_code, new_password, confirm)):
            raise ValidationError("Tüm alanlar gereklidir")
        if not validate_password(new_password):
            raise ValidationError(PASSWORD_RULES_MESSAGE, field="newPassword")
        if new_password != confirm:
            raise ValidationError(PASSWORD_MISMATCH_MESSAGE, field="confirmPassword")

        await self._require_captcha(req.captcha_token)

        user = await self._users.find_by_nickname(nickname)
        stored_hash = user.recovery_code_hash if user else _dummy_hash()
        matched = verify_password(recovery_code, stored_hash)
        if user is None or not matched:
            log.info("password_recovery_failed")
            raise AuthenticationError(INVALID_RECOVERY_MESSAGE)

        new_code = generate_recovery_code()
        await self._users.update(
            user.id,
            {
                "password_hash": hash_password(new_password),
                "recovery_code_hash": hash_password(new_code),
                "updated_at": self._clock(),
            },
        )
        log.info("password_recovered", user_id=str(user.id))
        return RecoverPasswordResponse(new_recovery_code=new_code)

    async def check_nickname(self, raw_nickname: str) -> NicknameCheckResponse:
        nickname = clean_text(raw_nickname)
        if not validate_nickname(nickname):
            return NicknameCheckResponse(nickname=nickname, valid=False, available=False)
        taken = await self._users.find_by_nickname(nickname) is not None
        return NicknameCheckResponse(nickname=nickname, valid=True, available=not taken)

    async def authenticate(self, token: str) -> UserDoc:
        """Resolve a bearer token to its user.

        Raises:
            AuthenticationError: bad/expired token or deleted user.
        """
        try:
            claims = verify_access_jwt(self._jwt, token)
        except jwt.InvalidTokenError:
            raise AuthenticationError(INVALID_SESSION_MESSAGE)
        user = await self._users.find_by_id(str(claims.get("sub", "")))
        if user is None:
            raise AuthenticationError(INVALID_SESSION_MESSAGE)
        return user

    async def update_profile(
        self, user: UserDoc, req: UpdateProfileRequest
    ) -> UserResponse:
        city = clean_text(req.city)
        if not city:
            raise ValidationError("Şehir gereklidir", field="city")
        updated = await self._users.update(
            user.id, {"city": city, "updated_at": self._clock()}
        )
        if updated is None:
            raise AuthenticationError(INVALID_SESSION_MESSAGE)
        return UserResponse.from_doc(updated)
