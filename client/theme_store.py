"""Theme preference (``light`` / ``dark``), one scalar under THEME_KEY."""

from __future__ import annotations

from client.results import StoreResult
from client.storage import THEME_KEY, KeyValueStorage
from shared.logging import get_logger

log = get_logger(__name__)

THEMES = ("light", "dark")
DEFAULT_THEME = "light"


class ThemeStore:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    def get_theme(self) -> str:
        value = self._storage.get_item(THEME_KEY)
        if value is None:
            return DEFAULT_THEME
        if value not in THEMES:
            log.warning("theme_storage_corrupt", value=value)
            try:
                self._storage.remove_item(THEME_KEY)
            except OSError as e:
                log.error("theme_storage_clear_failed", error=str(e))
            return DEFAULT_THEME
        return value

    def set_theme(self, theme: str) -> StoreResult:
        if theme not in THEMES:
            return StoreResult(False, "Geçersiz tema", "validation_error")
        try:
            self._storage.set_item(THEME_KEY, theme)
        except OSError as e:
            log.error("theme_persist_failed", error=str(e))
            return StoreResult(False, "Tema kaydedilemedi", "storage_error")
        return StoreResult(True)

    def toggle(self) -> StoreResult:
        return self.set_theme("dark" if self.get_theme() == "light" else "light")
