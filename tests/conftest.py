"""Shared fixtures: a controllable clock, captcha/JWT settings and an
in-memory stand-in for UserRepository."""

from __future__ import annotations

import os
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest
from bson import ObjectId

# AppSettings needs a MONGODB_URI even when no database is touched
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/")

from config import CaptchaSettings, JWTSettings  # noqa: E402
from infrastructure.captcha.memory_store import MemoryChallengeStore  # noqa: E402
from repositories.user_repository import DuplicateNicknameError  # noqa: E402
from schemas.models.user import UserDoc  # noqa: E402
from services.captcha_service import CaptchaService  # noqa: E402


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


class FakeUserRepository:
    """Dict-backed UserRepository with the same method surface."""

    def __init__(self) -> None:
        self.docs: dict[str, UserDoc] = {}

    async def ensure_indexes(self) -> None:
        return None

    async def find_by_nickname(self, nickname: str) -> Optional[UserDoc]:
        return next((u for u in self.docs.values() if u.nickname == nickname), None)

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        return self.docs.get(str(user_id))

    async def insert(self, user: UserDoc) -> UserDoc:
        if await self.find_by_nickname(user.nickname) is not None:
            raise DuplicateNicknameError(user.nickname)
        stored = user.model_copy(update={"id": ObjectId()})
        self.docs[str(stored.id)] = stored
        return stored

    async def update(self, user_id: Any, fields: dict) -> Optional[UserDoc]:
        current = self.docs.get(str(user_id))
        if current is None:
            return None
        updated = current.model_copy(update=fields)
        self.docs[str(user_id)] = updated
        return updated

    async def record_login(self, user_id: Any, when: datetime) -> None:
        await self.update(user_id, {"last_login_at": when})

    async def set_admin(self, nickname: str, is_admin: bool = True) -> bool:
        user = await self.find_by_nickname(nickname)
        if user is None:
            return False
        await self.update(user.id, {"is_admin": is_admin})
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def captcha_settings() -> CaptchaSettings:
    return CaptchaSettings(
        captcha_store="memory",
        captcha_ttl_seconds=600,
        captcha_token_ttl_seconds=300,
        captcha_max_attempts=3,
        captcha_min_circles=5,
        captcha_max_circles=7,
    )


@pytest.fixture
def jwt_settings() -> JWTSettings:
    return JWTSettings(
        jwt_secret="test-secret-with-enough-length-for-hs256",
        jwt_private_key="",
        jwt_public_key="",
    )


@pytest.fixture
def memory_store(clock) -> MemoryChallengeStore:
    return MemoryChallengeStore(clock=clock)


@pytest.fixture
def captcha_service(memory_store, captcha_settings, clock) -> CaptchaService:
    return CaptchaService(
        memory_store, captcha_settings, clock=clock, rng=random.Random(1234)
    )


@pytest.fixture
def user_repo() -> FakeUserRepository:
    return FakeUserRepository()
