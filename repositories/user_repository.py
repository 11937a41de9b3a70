"""
Async repository for the `users` collection.

Wraps a pymongo AsyncCollection; every method speaks UserDoc so services
never touch raw documents. Duplicate nicknames surface as
DuplicateNicknameError (backed by the unique index from ensure_indexes()).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError

from schemas.models.user import UserDoc
from shared.logging import get_logger

log = get_logger(__name__)

USERS_COLLECTION = "users"


class DuplicateNicknameError(Exception):
    """A user with this nickname already exists."""


class UserRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("nickname", ASCENDING)], unique=True)

    async def find_by_nickname(self, nickname: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"nickname": nickname})
        return UserDoc.from_mongo(doc)

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        if not ObjectId.is_valid(user_id):
            return None
        doc = await self._col.find_one({"_id": ObjectId(user_id)})
        return UserDoc.from_mongo(doc)

    async def insert(self, user: UserDoc) -> UserDoc:
        try:
            result = await self._col.insert_one(user.to_mongo())
        except DuplicateKeyError as e:
            raise DuplicateNicknameError(user.nickname) from e
        return user.model_copy(update={"id": result.inserted_id})

    async def update(self, user_id: Any, fields: dict) -> Optional[UserDoc]:
        """Apply ``$set`` *fields* and return the updated user (None if missing)."""
        doc = await self._col.find_one_and_update(
            {"_id": ObjectId(str(user_id))},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        return UserDoc.from_mongo(doc)

    async def record_login(self, user_id: Any, when: datetime) -> None:
        await self._col.update_one(
            {"_id": ObjectId(str(user_id))}, {"$set": {"last_login_at": when}}
        )

    async def set_admin(self, nickname: str, is_admin: bool = True) -> bool:
        result = await self._col.update_one(
            {"nickname": nickname}, {"$set": {"is_admin": is_admin}}
        )
        return result.matched_count > 0
