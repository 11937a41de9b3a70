"""
Integration fixtures.

The real create_app() is used; its lifespan is not entered (TestClient is
used without a context manager and ASGITransport never sends lifespan
events), so app.state is filled in here with the in-memory challenge store
and the fake user repository. Rate limiting is off here; the 429 path
has its own tests with small limits.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app import create_app
from config import AppSettings, CaptchaSettings, RateLimitSettings
from infrastructure.captcha.memory_store import MemoryChallengeStore


@pytest.fixture
def store():
    return MemoryChallengeStore()


@pytest.fixture
def app(jwt_settings, store, user_repo):
    settings = AppSettings(
        jwt=jwt_settings,
        captcha=CaptchaSettings(captcha_store="memory"),
        rate_limit=RateLimitSettings(rate_limit_enabled=False),
    )
    application = create_app(settings)

    db = MagicMock()
    db.client.admin.command = AsyncMock(return_value={"ok": 1})
    application.state.settings = settings
    application.state.db = db
    application.state.redis = None
    application.state.challenge_store = store
    application.state.user_repository = user_repo
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
