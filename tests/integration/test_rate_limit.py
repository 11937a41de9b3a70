"""Per-IP request limits on the real captcha and auth routes."""

import pytest
from fastapi.testclient import TestClient

from config import RateLimitSettings
from infrastructure.rate_limiter import LIMIT_MESSAGES, build_rate_limiter

LOGIN = {"nickname": "ayse_k", "password": "yanlis1", "captchaToken": "bayat"}


@pytest.fixture
def limited(app):
    app.state.rate_limiter = build_rate_limiter(
        RateLimitSettings(
            auth_rate_limit="2 per 15 minutes",
            captcha_rate_limit="3 per minute",
            api_rate_limit="50 per 5 minutes",
        )
    )
    return TestClient(app)


def test_login_limited_after_budget(limited):
    for _ in range(2):
        assert limited.post("/api/auth/login", json=LOGIN).status_code == 401

    resp = limited.post("/api/auth/login", json=LOGIN)
    assert resp.status_code == 429
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "rate_limit_exceeded"
    assert body["message"] == LIMIT_MESSAGES["auth"]
    assert int(resp.headers["Retry-After"]) == body["details"]["retryAfter"] > 0


def test_auth_budget_shared_by_credential_routes(limited):
    limited.post("/api/auth/login", json=LOGIN)
    limited.post("/api/auth/register", json={**LOGIN, "confirmPassword": "yanlis1"})
    resp = limited.post(
        "/api/auth/recover-password",
        json={**LOGIN, "recoveryCode": "REC_X", "newPassword": "a", "confirmPassword": "a"},
    )
    assert resp.status_code == 429


def test_check_nickname_not_in_auth_budget(limited):
    for _ in range(2):
        limited.post("/api/auth/login", json=LOGIN)
    resp = limited.post("/api/auth/check-nickname", json={"nickname": "ayse_k"})
    assert resp.status_code == 200


def test_captcha_limited(limited):
    for _ in range(3):
        assert limited.post("/api/captcha/create").status_code == 200
    resp = limited.post("/api/captcha/create")
    assert resp.status_code == 429
    assert resp.json()["message"] == LIMIT_MESSAGES["captcha"]


def test_other_client_unaffected(limited):
    for _ in range(3):
        limited.post("/api/captcha/create", headers={"X-Forwarded-For": "10.0.0.1"})
    resp = limited.post("/api/captcha/create", headers={"X-Forwarded-For": "10.0.0.2"})
    assert resp.status_code == 200


def test_health_is_not_limited(limited):
    for _ in range(60):
        assert limited.get("/health").status_code == 200
