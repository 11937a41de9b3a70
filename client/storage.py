"""
Durable key/value storage for client-side state.

The storefront keeps its session, cart and theme in a localStorage-like
string store. ``JsonFileStorage`` persists to a single JSON file and
replaces it atomically on every write; ``MemoryStorage`` is the
non-durable variant for tests and throwaway sessions.

Current keys are namespaced under ``bitki.``. Keys written by older
storefront builds are listed in LEGACY_KEYS and purged at startup.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol, Union

from shared.logging import get_logger

log = get_logger(__name__)

AUTH_KEY = "bitki.auth"
CART_KEY = "bitki.cart"
THEME_KEY = "bitki.theme"

LEGACY_KEYS = (
    "auth",
    "token",
    "user",
    "cart",
    "theme",
    "adminToken",
    "adminUser",
    "userToken",
    "currentUser",
    "authToken",
    "userData",
    "isLoggedIn",
    "loginTime",
    "selectedCity",
    "cartItems",
    "userCity",
    "lastLogin",
)


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryStorage:
    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStorage:
    """String store persisted as one JSON object on disk.

    A missing file is an empty store. An unreadable or malformed file is
    logged and replaced by an empty store on the next write.

    Raises:
        OSError: from set_item/remove_item when the file cannot be written.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._data = self._read()

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            log.warning("client_storage_unreadable", path=str(self.path), error=str(e))
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            log.warning("client_storage_corrupt", path=str(self.path))
            return {}
        if not isinstance(data, dict):
            log.warning("client_storage_corrupt", path=str(self.path))
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        updated = {**self._data, key: value}
        self._flush(updated)
        self._data = updated

    def remove_item(self, key: str) -> None:
        if key not in self._data:
            return
        updated = {k: v for k, v in self._data.items() if k != key}
        self._flush(updated)
        self._data = updated

    def keys(self) -> list[str]:
        return list(self._data)


def purge_legacy_keys(storage: KeyValueStorage) -> list[str]:
    """Remove every key from LEGACY_KEYS; return the ones that were present."""
    present = [key for key in LEGACY_KEYS if storage.get_item(key) is not None]
    for key in present:
        storage.remove_item(key)
    if present:
        log.info("client_legacy_keys_purged", keys=present)
    return present
