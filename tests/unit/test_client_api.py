"""Unit tests for client/http_client.py and client/api.py."""

import json

import httpx
import pytest

from client.api import NETWORK_ERROR_MESSAGE, StorefrontClient
from client.http_client import HttpClient
from client.session_store import SessionStore
from client.storage import AUTH_KEY, MemoryStorage

USER = {"id": "u1", "nickname": "ayse_k", "city": "Bursa", "isAdmin": False}
BASE_URL = "http://store.test"


def _envelope(data=None, message="Başarılı", success=True):
    return {"success": success, "message": message, "data": data}


class Recorder:
    """httpx.MockTransport handler that records requests and replays responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


# ── HttpClient ────────────────────────────────────────────────────────────────


class TestHttpClient:
    async def test_no_header_when_logged_out(self):
        rec = Recorder(httpx.Response(200, json=_envelope()))
        session = SessionStore(MemoryStorage())
        async with HttpClient(BASE_URL, session, transport=rec.transport) as http:
            await http.get("/api/auth/profile")
        assert "authorization" not in rec.requests[0].headers

    async def test_bearer_header_from_session(self):
        rec = Recorder(httpx.Response(200, json=_envelope()))
        session = SessionStore(MemoryStorage())
        session.set_auth("jwt-token", USER)
        async with HttpClient(BASE_URL, session, transport=rec.transport) as http:
            await http.get("/api/auth/profile")
        assert rec.requests[0].headers["authorization"] == "Bearer jwt-token"

    async def test_401_with_token_clears_session(self):
        rec = Recorder(httpx.Response(401, json={"success": False, "message": "x"}))
        session = SessionStore(MemoryStorage())
        session.set_auth("jwt-token", USER)
        redirected = []
        async with HttpClient(
            BASE_URL,
            session,
            on_unauthorized=lambda: redirected.append(True),
            transport=rec.transport,
        ) as http:
            resp = await http.get("/api/auth/profile")
        assert resp.status_code == 401
        assert session.is_authenticated is False
        assert redirected == [True]

    async def test_401_without_token_leaves_hook_alone(self):
        rec = Recorder(httpx.Response(401, json={"success": False, "message": "x"}))
        redirected = []
        async with HttpClient(
            BASE_URL,
            SessionStore(MemoryStorage()),
            on_unauthorized=lambda: redirected.append(True),
            transport=rec.transport,
        ) as http:
            await http.post("/api/auth/login", json={})
        assert redirected == []

    async def test_401_without_clearing_keeps_session(self):
        rec = Recorder(httpx.Response(401, json={"success": False, "message": "x"}))
        session = SessionStore(MemoryStorage())
        session.set_auth("jwt-token", USER)
        redirected = []
        async with HttpClient(
            BASE_URL,
            session,
            on_unauthorized=lambda: redirected.append(True),
            transport=rec.transport,
        ) as http:
            resp = await http.post("/api/auth/login", json={}, clear_on_401=False)
        assert resp.status_code == 401
        assert session.get_token() == "jwt-token"
        assert redirected == []


# ── StorefrontClient ─────────────────────────────────────────────────────────


class TestStorefrontClient:
    async def test_purges_legacy_keys_on_start(self):
        storage = MemoryStorage({"userToken": "old", "currentUser": "{}"})
        client = StorefrontClient(BASE_URL, storage)
        assert storage.keys() == []
        await client.aclose()

    async def test_login_stores_session(self):
        rec = Recorder(
            httpx.Response(
                200, json=_envelope({"token": "jwt-token", "user": USER}, "Giriş başarılı")
            )
        )
        client = StorefrontClient(BASE_URL, MemoryStorage(), transport=rec.transport)
        result = await client.login("ayse_k", "gizli123", "captcha-token")
        await client.aclose()

        assert result.success is True
        assert result.message == "Giriş başarılı"
        assert client.session.get_token() == "jwt-token"
        assert json.loads(rec.requests[0].content) == {
            "nickname": "ayse_k",
            "password": "gizli123",
            "captchaToken": "captcha-token",
        }

    async def test_failed_login_leaves_session_empty(self):
        rec = Recorder(
            httpx.Response(
                401,
                json={
                    "success": False,
                    "message": "Geçersiz giriş bilgileri",
                    "code": "authentication_error",
                },
            )
        )
        client = StorefrontClient(BASE_URL, MemoryStorage(), transport=rec.transport)
        result = await client.login("ayse_k", "wrong", "captcha-token")
        await client.aclose()
        assert result.success is False
        assert result.status_code == 401
        assert result.message == "Geçersiz giriş bilgileri"
        assert client.session.is_authenticated is False

    async def test_verify_wrong_selection_exposes_details(self):
        rec = Recorder(
            httpx.Response(
                400,
                json={
                    "success": False,
                    "message": "Yanlış seçim. 2 deneme hakkınız kaldı.",
                    "code": "validation_error",
                    "details": {"remainingAttempts": 2},
                },
            )
        )
        client = StorefrontClient(BASE_URL, MemoryStorage(), transport=rec.transport)
        result = await client.verify_captcha("abc", 1)
        await client.aclose()
        assert result.success is False
        assert result.data is None
        assert result.code == "validation_error"
        assert result.details == {"remainingAttempts": 2}

    async def test_network_error_is_a_result(self):
        rec = Recorder(httpx.ConnectError("refused"))
        client = StorefrontClient(BASE_URL, MemoryStorage(), transport=rec.transport)
        result = await client.create_captcha()
        await client.aclose()
        assert result.success is False
        assert result.message == NETWORK_ERROR_MESSAGE

    async def test_non_json_response(self):
        rec = Recorder(httpx.Response(502, text="<html>Bad gateway</html>"))
        client = StorefrontClient(BASE_URL, MemoryStorage(), transport=rec.transport)
        result = await client.create_captcha()
        await client.aclose()
        assert result.success is False
        assert result.status_code == 502

    async def test_fetch_profile_requires_session(self):
        client = StorefrontClient(BASE_URL, MemoryStorage(), transport=Recorder().transport)
        result = await client.fetch_profile()
        await client.aclose()
        assert result.success is False

    async def test_fetch_profile_refreshes_user(self):
        storage = MemoryStorage()
        rec = Recorder(httpx.Response(200, json=_envelope({**USER, "isAdmin": True})))
        client = StorefrontClient(BASE_URL, storage, transport=rec.transport)
        client.session.set_auth("jwt-token", USER)
        result = await client.fetch_profile()
        await client.aclose()
        assert result.success is True
        assert client.session.is_admin is True
        assert client.session.get_token() == "jwt-token"

    async def test_expired_session_logs_out(self):
        storage = MemoryStorage()
        rec = Recorder(httpx.Response(401, json={"success": False, "message": "Geçersiz token"}))
        logged_out = []
        client = StorefrontClient(
            BASE_URL,
            storage,
            on_unauthorized=lambda: logged_out.append(True),
            transport=rec.transport,
        )
        client.session.set_auth("jwt-token", USER)
        await client.update_profile("Ankara")
        await client.aclose()
        assert storage.get_item(AUTH_KEY) is None
        assert logged_out == [True]

    async def test_logout_keeps_cart(self):
        storage = MemoryStorage()
        client = StorefrontClient(BASE_URL, storage, transport=Recorder().transport)
        client.session.set_auth("jwt-token", USER)
        client.cart.add_item({"id": "p1", "name": "Fikus", "price": "10", "stock": 3})
        client.logout()
        await client.aclose()
        assert client.session.is_authenticated is False
        assert client.cart.quantity_of("p1") == 1


@pytest.mark.parametrize("status", [200, 201])
async def test_register_stores_session(status):
    rec = Recorder(
        httpx.Response(
            status,
            json=_envelope(
                {"token": "jwt-token", "user": USER, "recoveryCode": "REC_A"},
                "Kayıt başarılı",
            ),
        )
    )
    client = StorefrontClient(BASE_URL, MemoryStorage(), transport=rec.transport)
    result = await client.register("ayse_k", "gizli123", "gizli123", "Bursa", "tok")
    await client.aclose()
    assert result.data["recoveryCode"] == "REC_A"
    assert client.session.get_user().nickname == "ayse_k"


# ── Failed credential exchanges keep the existing session ────────────────────

_REJECTED = {
    "success": False,
    "message": "Geçersiz giriş bilgileri",
    "code": "authentication_error",
}


@pytest.mark.parametrize(
    "call",
    [
        lambda c: c.login("ayse_k", "wrong", "captcha-token"),
        lambda c: c.register("yeni_kul", "gizli123", "gizli123", "Bursa", "stale"),
        lambda c: c.recover_password("ayse_k", "REC_X", "yeni123", "yeni123", "stale"),
    ],
    ids=["login", "register", "recover_password"],
)
async def test_rejected_credentials_keep_logged_in_session(call):
    storage = MemoryStorage()
    rec = Recorder(httpx.Response(401, json=_REJECTED))
    logged_out = []
    client = StorefrontClient(
        BASE_URL,
        storage,
        on_unauthorized=lambda: logged_out.append(True),
        transport=rec.transport,
    )
    client.session.set_auth("jwt-token", USER)
    before = storage.get_item(AUTH_KEY)

    result = await call(client)
    await client.aclose()

    assert result.success is False
    assert result.status_code == 401
    assert result.code == "authentication_error"
    assert client.session.get_token() == "jwt-token"
    assert client.session.get_user().nickname == "ayse_k"
    assert storage.get_item(AUTH_KEY) == before
    assert logged_out == []
    # The stored token still goes out with the request
    assert rec.requests[0].headers["authorization"] == "Bearer jwt-token"
