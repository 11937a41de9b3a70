"""Unit tests for repositories/user_repository.py (AsyncCollection mocked)."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from repositories.user_repository import DuplicateNicknameError, UserRepository
from schemas.models.user import UserDoc


def _doc(**overrides):
    base = {
        "_id": ObjectId(),
        "nickname": "ayse_k",
        "password_hash": "h",
        "recovery_code_hash": "r",
        "city": "Bursa",
        "is_admin": False,
    }
    base.update(overrides)
    return base


@pytest.fixture
def col():
    return AsyncMock()


@pytest.fixture
def repo(col):
    return UserRepository(col)


class TestUserRepository:
    async def test_ensure_indexes_unique_nickname(self, repo, col):
        await repo.ensure_indexes()
        args, kwargs = col.create_index.call_args
        assert args[0] == [("nickname", 1)]
        assert kwargs["unique"] is True

    async def test_find_by_nickname(self, repo, col):
        col.find_one.return_value = _doc()
        user = await repo.find_by_nickname("ayse_k")
        col.find_one.assert_awaited_once_with({"nickname": "ayse_k"})
        assert isinstance(user, UserDoc)

    async def test_find_by_nickname_missing(self, repo, col):
        col.find_one.return_value = None
        assert await repo.find_by_nickname("nobody") is None

    async def test_find_by_id_invalid_skips_query(self, repo, col):
        assert await repo.find_by_id("not-an-id") is None
        col.find_one.assert_not_awaited()

    async def test_insert_returns_copy_with_id(self, repo, col):
        new_id = ObjectId()
        col.insert_one.return_value = MagicMock(inserted_id=new_id)
        user = UserDoc.model_validate({k: v for k, v in _doc().items() if k != "_id"})
        stored = await repo.insert(user)
        assert stored.id == new_id
        assert "_id" not in col.insert_one.call_args.args[0]

    async def test_insert_duplicate(self, repo, col):
        col.insert_one.side_effect = DuplicateKeyError("E11000")
        user = UserDoc.model_validate({k: v for k, v in _doc().items() if k != "_id"})
        with pytest.raises(DuplicateNicknameError):
            await repo.insert(user)

    async def test_update_returns_new_doc(self, repo, col):
        oid = ObjectId()
        col.find_one_and_update.return_value = _doc(_id=oid, city="Ankara")
        updated = await repo.update(oid, {"city": "Ankara"})
        assert updated.city == "Ankara"
        assert col.find_one_and_update.call_args.args[1] == {"$set": {"city": "Ankara"}}

    async def test_record_login(self, repo, col):
        oid = ObjectId()
        when = datetime(2026, 3, 1, tzinfo=timezone.utc)
        await repo.record_login(oid, when)
        col.update_one.assert_awaited_once_with(
            {"_id": oid}, {"$set": {"last_login_at": when}}
        )

    @pytest.mark.parametrize("matched, expected", [(1, True), (0, False)])
    async def test_set_admin(self, repo, col, matched, expected):
        col.update_one.return_value = MagicMock(matched_count=matched)
        assert await repo.set_admin("ayse_k") is expected
