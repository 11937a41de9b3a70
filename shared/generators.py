"""
Random identifier and token generators: pure functions.

All generators use the ``secrets`` module; challenge ids, verification
tokens and recovery codes must not be predictable.
"""

from __future__ import annotations

import secrets
import string

RECOVERY_CODE_PREFIX = "REC_"
_RECOVERY_ALPHABET = string.ascii_uppercase + string.digits


def generate_challenge_id() -> str:
    """Return a 32-character hex identifier for a captcha challenge."""
    return secrets.token_hex(16)


def generate_verification_token() -> str:
    """Return a 64-character hex token proving a solved challenge."""
    return secrets.token_hex(32)


def generate_recovery_code(groups: int = 4, group_size: int = 4) -> str:
    """Generate a recovery code such as ``REC_AB12_CD34_EF56_GH78``.

    Args:
        groups: Number of underscore-separated groups (default 4).
        group_size: Characters per group (default 4).
    """
    parts = [
        "".join(secrets.choice(_RECOVERY_ALPHABET) for _ in range(group_size))
        for _ in range(groups)
    ]
    return RECOVERY_CODE_PREFIX + "_".join(parts)
