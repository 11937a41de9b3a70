"""
StorefrontClient: the client-side facade over the storefront API.

Owns the session, cart and theme stores (all backed by one storage) and
the HTTP client. Calls never raise on network or server errors: they
return an ApiResult and leave local state as it was.

Typical login flow::

    client = StorefrontClient("https://api.example", JsonFileStorage(path))
    challenge = await client.create_captcha()
    verified = await client.verify_captcha(challenge.data["captchaId"], index)
    await client.login("nickname", "secret", verified.data["token"])
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import httpx

from client.cart_store import CartStore
from client.http_client import HttpClient
from client.results import ApiResult
from client.session_store import SessionStore
from client.storage import KeyValueStorage, purge_legacy_keys
from client.theme_store import ThemeStore
from shared.logging import get_logger

log = get_logger(__name__)

NETWORK_ERROR_MESSAGE = "Sunucuya ulaşılamadı"
BAD_RESPONSE_MESSAGE = "Geçersiz sunucu yanıtı"


class StorefrontClient:
    def __init__(
        self,
        base_url: str,
        storage: KeyValueStorage,
        on_unauthorized: Optional[Callable[[], None]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        purge_legacy_keys(storage)
        self.session = SessionStore(storage)
        self.cart = CartStore(storage)
        self.theme = ThemeStore(storage)
        self._http = HttpClient(
            base_url,
            self.session,
            on_unauthorized=on_unauthorized,
            timeout=timeout,
            transport=transport,
        )

    async def _call(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        *,
        clear_on_401: bool = True,
    ) -> ApiResult:
        try:
            response = await self._http.request(
                method, path, json=payload, clear_on_401=clear_on_401
            )
        except httpx.HTTPError as e:
            log.warning(
                "api_request_failed",
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ApiResult(False, message=NETWORK_ERROR_MESSAGE)

        try:
            body = response.json()
        except ValueError:
            log.warning(
                "api_bad_response", path=path, status_code=response.status_code
            )
            return ApiResult(
                False, message=BAD_RESPONSE_MESSAGE, status_code=response.status_code
            )
        if not isinstance(body, dict):
            return ApiResult(
                False, message=BAD_RESPONSE_MESSAGE, status_code=response.status_code
            )

        return ApiResult(
            success=bool(body.get("success")) and response.is_success,
            data=body.get("data"),
            message=body.get("message", ""),
            status_code=response.status_code,
            code=body.get("code"),
            details=body.get("details"),
        )

    def _remember_session(self, result: ApiResult) -> ApiResult:
        data = result.data if isinstance(result.data, dict) else {}
        token, user = data.get("token"), data.get("user")
        if not result.success or not token or not isinstance(user, dict):
            return result
        if not self.session.set_auth(token, user):
            return ApiResult(
                False, message="Oturum kaydedilemedi", status_code=result.status_code
            )
        return result

    # ── Captcha ──────────────────────────────────────────────────────────────

    async def create_captcha(self) -> ApiResult:
        return await self._call("POST", "/api/captcha/create")

    async def verify_captcha(self, captcha_id: str, selected_index: int) -> ApiResult:
        return await self._call(
            "POST",
            "/api/captcha/verify",
            {"captchaId": captcha_id, "selectedIndex": selected_index},
        )

    # ── Auth ─────────────────────────────────────────────────────────────────
    # A 401 from the credential exchanges rejects the submitted credentials
    # or captcha token; the stored session stays as it was.

    async def login(self, nickname: str, password: str, captcha_token: str) -> ApiResult:
        result = await self._call(
            "POST",
            "/api/auth/login",
            {"nickname": nickname, "password": password, "captchaToken": captcha_token},
            clear_on_401=False,
        )
        return self._remember_session(result)

    async def register(
        self,
        nickname: str,
        password: str,
        confirm_password: str,
        city: str,
        captcha_token: str,
    ) -> ApiResult:
        result = await self._call(
            "POST",
            "/api/auth/register",
            {
                "nickname": nickname,
                "password": password,
                "confirmPassword": confirm_password,
                "city": city,
                "captchaToken": captcha_token,
            },
            clear_on_401=False,
        )
        return self._remember_session(result)

    async def recover_password(
        self,
        nickname: str,
        recovery_code: str,
        new_password: str,
        confirm_password: str,
        captcha_token: str,
    ) -> ApiResult:
        return await self._call(
            "POST",
            "/api/auth/recover-password",
            {
                "nickname": nickname,
                "recoveryCode": recovery_code,
                "newPassword": new_password,
                "confirmPassword": confirm_password,
                "captchaToken": captcha_token,
            },
            clear_on_401=False,
        )

    async def fetch_profile(self) -> ApiResult:
        """Refresh the stored user from the server (401 logs the user out)."""
        token = self.session.get_token()
        if token is None:
            return ApiResult(False, message="Giriş yapmanız gerekiyor")
        result = await self._call("GET", "/api/auth/profile")
        if result.success and isinstance(result.data, dict):
            self.session.set_auth(token, result.data)
        return result

    async def update_profile(self, city: str) -> ApiResult:
        token = self.session.get_token()
        result = await self._call("PUT", "/api/auth/profile", {"city": city})
        if token and result.success and isinstance(result.data, dict):
            self.session.set_auth(token, result.data)
        return result

    def logout(self) -> None:
        self.session.clear_auth()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
