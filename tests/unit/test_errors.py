"""Unit tests for the AppError hierarchy and the exception handlers."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from errors import (
    AppError,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
    register_error_handlers,
)


class TestAppErrorSubclasses:
    @pytest.mark.parametrize(
        "cls, status, code",
        [
            (ValidationError, 400, "validation_error"),
            (AuthenticationError, 401, "authentication_error"),
            (ForbiddenError, 403, "forbidden"),
            (ConflictError, 409, "conflict"),
            (ServiceUnavailableError, 503, "service_unavailable"),
        ],
    )
    def test_status_and_code(self, cls, status, code):
        e = cls("msg")
        assert isinstance(e, AppError)
        assert e.status_code == status
        assert e.error_code == code
        assert e.message == "msg"


class TestRateLimitError:
    def test_status_details_and_header(self):
        e = RateLimitError("Çok fazla istek", retry_after=42)
        assert e.status_code == 429
        assert e.error_code == "rate_limit_exceeded"
        assert e.to_dict()["details"] == {"retryAfter": 42}
        assert e.headers == {"Retry-After": "42"}

    def test_other_errors_carry_no_headers(self):
        assert ConflictError("taken").headers is None


class TestAppErrorToDict:
    def test_basic_envelope(self):
        e = ConflictError("Bu nickname zaten alınmış")
        assert e.to_dict() == {
            "success": False,
            "message": "Bu nickname zaten alınmış",
            "code": "conflict",
        }

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "nickname"}, "field", "nickname"),
            ({"details": {"remainingAttempts": 2}}, "details", {"remainingAttempts": 2}),
        ],
        ids=["with_field", "with_details"],
    )
    def test_optional_key_present(self, kwargs, key, value):
        e = ValidationError("invalid", **kwargs)
        assert e.to_dict()[key] == value

    def test_no_optional_keys_when_absent(self):
        d = ConflictError("taken").to_dict()
        assert "field" not in d
        assert "details" not in d


# ── Handlers ─────────────────────────────────────────────────────────────────


class _Body(BaseModel):
    count: int


def _app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/conflict")
    async def conflict():
        raise ConflictError("Bu nickname zaten kullanılıyor", field="nickname")

    @app.post("/typed")
    async def typed(body: _Body):
        return {"count": body.count}

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    return app


class TestHandlers:
    def test_app_error_rendered(self):
        with TestClient(_app()) as client:
            resp = client.get("/conflict")
        assert resp.status_code == 409
        body = resp.json()
        assert body["success"] is False
        assert body["field"] == "nickname"

    def test_request_validation_becomes_400(self):
        with TestClient(_app()) as client:
            resp = client.post("/typed", json={"count": "many"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "validation_error"
        assert body["field"] == "count"

    def test_unhandled_exception_is_generic_500(self):
        with TestClient(_app(), raise_server_exceptions=False) as client:
            resp = client.get("/boom")
        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "message": "Sunucu hatası",
            "code": "internal_error",
        }
        assert "kaboom" not in resp.text
