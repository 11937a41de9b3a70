"""
Session store: who is logged in, and with which token.

The token and the user are persisted together as one blob under AUTH_KEY,
so they are written, read and cleared as a unit. Every read goes to
storage; there is no second copy that could drift.

Parsing: a stored token of ``"null"`` / ``"undefined"`` / ``""``,
malformed JSON, a token without a user (or the reverse) or a user that does
not validate are treated as "logged out" and the key is cleared.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from client.storage import AUTH_KEY, KeyValueStorage
from shared.logging import get_logger

log = get_logger(__name__)

INVALID_TOKEN_VALUES = frozenset({"", "null", "undefined"})


class SessionUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    nickname: str
    city: str = ""
    is_admin: bool = Field(default=False, alias="isAdmin")


@dataclass(frozen=True)
class Session:
    token: Optional[str] = None
    user: Optional[SessionUser] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None


SessionListener = Callable[[Session], None]


def _usable_token(token: Any) -> bool:
    return isinstance(token, str) and token.strip() not in INVALID_TOKEN_VALUES


class SessionStore:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._listeners: list[SessionListener] = []

    # ── Listeners ────────────────────────────────────────────────────────────

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call *listener* with the new Session after every change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        session = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception as e:
                log.error(
                    "session_listener_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    # ── Reads ────────────────────────────────────────────────────────────────

    def _discard(self, reason: str) -> None:
        log.warning("session_storage_corrupt", reason=reason)
        try:
            self._storage.remove_item(AUTH_KEY)
        except OSError as e:
            log.error("session_storage_clear_failed", error=str(e))
            return
        self._notify()

    def _read(self) -> Optional[tuple[str, SessionUser]]:
        raw = self._storage.get_item(AUTH_KEY)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            self._discard("malformed_json")
            return None
        if not isinstance(data, dict):
            self._discard("not_an_object")
            return None

        token, user_data = data.get("token"), data.get("user")
        if not _usable_token(token):
            self._discard("invalid_token")
            return None
        if not isinstance(user_data, dict):
            self._discard("missing_user")
            return None
        try:
            user = SessionUser.model_validate(user_data)
        except PydanticValidationError:
            self._discard("invalid_user")
            return None
        return token, user

    def snapshot(self) -> Session:
        stored = self._read()
        if stored is None:
            return Session()
        return Session(token=stored[0], user=stored[1])

    def get_token(self) -> Optional[str]:
        stored = self._read()
        return stored[0] if stored else None

    def get_user(self) -> Optional[SessionUser]:
        stored = self._read()
        return stored[1] if stored else None

    @property
    def is_authenticated(self) -> bool:
        return self._read() is not None

    @property
    def is_admin(self) -> bool:
        user = self.get_user()
        return bool(user and user.is_admin)

    # ── Writes ───────────────────────────────────────────────────────────────

    def set_auth(
        self,
        token: str,
        user: Union[SessionUser, Mapping[str, Any]],
    ) -> bool:
        """Persist *token* and *user* together. Returns False if rejected."""
        if not _usable_token(token):
            log.warning("session_set_rejected", reason="invalid_token")
            return False
        try:
            session_user = (
                user
                if isinstance(user, SessionUser)
                else SessionUser.model_validate(dict(user))
            )
        except (PydanticValidationError, TypeError, ValueError):
            log.warning("session_set_rejected", reason="invalid_user")
            return False

        blob = json.dumps(
            {
                "token": token,
                "user": session_user.model_dump(by_alias=True),
                "timestamp": int(time.time() * 1000),
            },
            ensure_ascii=False,
        )
        try:
            self._storage.set_item(AUTH_KEY, blob)
        except OSError as e:
            log.error("session_persist_failed", error=str(e))
            return False
        self._notify()
        return True

    def clear_auth(self) -> None:
        """Forget the session. Safe to call when already logged out."""
        if self._storage.get_item(AUTH_KEY) is None:
            return
        try:
            self._storage.remove_item(AUTH_KEY)
        except OSError as e:
            log.error("session_clear_failed", error=str(e))
            return
        self._notify()
