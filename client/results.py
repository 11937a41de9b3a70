"""Structured outcomes returned by client stores and API calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a store mutation. ``ok=False`` means state is unchanged."""

    ok: bool
    message: str = ""
    code: Optional[str] = None


@dataclass(frozen=True)
class ApiResult:
    """Outcome of a storefront API call (never raised, always returned).

    ``data`` carries the success payload; on failure the server's error
    ``code`` and ``details`` (for example ``remainingAttempts``) are kept in
    their own fields.
    """

    success: bool
    data: Any = None
    message: str = ""
    status_code: Optional[int] = None
    code: Optional[str] = None
    details: Any = None
