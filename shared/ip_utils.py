"""
Client IP resolution for FastAPI requests.

Takes an explicit ``Request`` so the function is testable without a
request context.
"""

from __future__ import annotations

from fastapi import Request

_LOOPBACK_V6 = "::1"


def _normalise(ip: str) -> str:
    return "127.0.0.1" if ip == _LOOPBACK_V6 else ip


def get_client_ip(request: Request) -> str:
    """Extract the real client IP from a FastAPI ``Request``.

    Proxy headers are checked first (``X-Forwarded-For`` takes the first
    address in the list, then ``X-Real-IP``), then the direct connection.
    IPv6 loopback is reported as ``127.0.0.1``.

    Returns:
        The resolved client IP, or ``"unknown"`` when none can be found.
    """
    forwarded: str | None = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return _normalise(first)

    real_ip: str | None = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return _normalise(real_ip.strip())

    if request.client and request.client.host:
        return _normalise(request.client.host)
    return "unknown"
