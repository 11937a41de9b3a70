"""
User document model.

Maps to the `users` MongoDB collection. Nicknames are unique (enforced by
an index created at startup). Passwords and recovery codes are stored only
as argon2 hashes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    nickname: str
    password_hash: str
    recovery_code_hash: str
    city: str
    is_admin: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
