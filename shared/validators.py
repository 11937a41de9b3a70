"""
Account input validators: framework-agnostic, pure functions.

Text coming from the storefront forms is NFC-normalised and trimmed before
validation so that visually identical Turkish input compares equal.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

NICKNAME_MIN_LENGTH = 3
NICKNAME_MAX_LENGTH = 24
PASSWORD_MIN_LENGTH = 6

_NICKNAME_RE = re.compile(r"^[A-Za-z0-9_.]+$")


def clean_text(value: Optional[str]) -> str:
    """NFC-normalise and strip *value*; ``None`` becomes ``""``."""
    if value is None:
        return ""
    return unicodedata.normalize("NFC", value).strip()


def validate_nickname(nickname: str) -> bool:
    """Return True for 3–24 characters of ASCII letters, digits, ``_`` or ``.``."""
    if not nickname:
        return False
    if not NICKNAME_MIN_LENGTH <= len(nickname) <= NICKNAME_MAX_LENGTH:
        return False
    return bool(_NICKNAME_RE.match(nickname))


def validate_password(password: str) -> bool:
    """Return True if *password* has at least six characters."""
    return bool(password) and len(password) >= PASSWORD_MIN_LENGTH
