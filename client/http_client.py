"""Async HTTP client for the storefront API.

Thin wrapper around httpx.AsyncClient that

- sends ``Authorization: Bearer <token>`` from the session store on every
  request, read at call time so a fresh login applies immediately;
- on a 401 to a request that carried a token, clears the session and calls
  ``on_unauthorized`` (the UI's redirect-to-login hook). Credential
  exchanges pass ``clear_on_401=False``: their 401 rejects the submitted
  credentials, not the stored session.
"""

from typing import Any, Callable, Optional

import httpx

from client.session_store import SessionStore
from shared.logging import get_logger

log = get_logger(__name__)


class HttpClient:
    def __init__(
        self,
        base_url: str,
        session: SessionStore,
        on_unauthorized: Optional[Callable[[], None]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._session = session
        self._on_unauthorized = on_unauthorized
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout, transport=transport
        )

    async def request(
        self, method: str, url: str, *, clear_on_401: bool = True, **kwargs: Any
    ) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        token = self._session.get_token()
        if token:
            headers.setdefault("Authorization", f"Bearer {token}")

        response = await self._client.request(method, url, headers=headers, **kwargs)

        if response.status_code == 401 and token and clear_on_401:
            log.info("session_rejected_by_server", path=url)
            self._session.clear_auth()
            if self._on_unauthorized is not None:
                self._on_unauthorized()
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
