#!/usr/bin/env python3
"""
Admin account bootstrap.

Creates an admin user, or promotes an existing one, directly in MongoDB.
Intended for the first deployment where no admin exists yet to use the
panel.

    python create_admin.py --nickname admin --city Istanbul
    python create_admin.py --nickname existing_user --promote

The password is read from ADMIN_PASSWORD or prompted for. The recovery code
is printed once.
"""

import argparse
import asyncio
import getpass
import os
import sys

from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import DatabaseSettings
from repositories.user_repository import (
    USERS_COLLECTION,
    DuplicateNicknameError,
    UserRepository,
)
from schemas.models.user import UserDoc
from shared.crypto import hash_password
from shared.datetime_utils import utcnow
from shared.generators import generate_recovery_code
from shared.validators import clean_text, validate_nickname, validate_password


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or promote an admin user")
    parser.add_argument("--nickname", required=True)
    parser.add_argument("--city", default="Istanbul")
    parser.add_argument(
        "--promote",
        action="store_true",
        help="grant admin to an existing user instead of creating one",
    )
    return parser.parse_args(argv)


async def create_admin(
    users: UserRepository, nickname: str, password: str, city: str
) -> str:
    """Insert an admin user and return its one-time recovery code."""
    recovery_code = generate_recovery_code()
    now = utcnow()
    await users.insert(
        UserDoc(
            nickname=nickname,
            password_hash=hash_password(password),
            recovery_code_hash=hash_password(recovery_code),
            city=city,
            is_admin=True,
            created_at=now,
            updated_at=now,
        )
    )
    return recovery_code


async def run(args: argparse.Namespace) -> int:
    nickname = clean_text(args.nickname)
    if not validate_nickname(nickname):
        print(f"Invalid nickname: {nickname!r}")
        return 2

    settings = DatabaseSettings()
    client = AsyncMongoClient(settings.mongodb_uri)
    try:
        users = UserRepository(client[settings.db_name][USERS_COLLECTION])
        await users.ensure_indexes()

        if args.promote:
            if await users.set_admin(nickname, True):
                print(f"✅ {nickname} is now an admin")
                return 0
            print(f"❌ No user named {nickname}")
            return 1

        password = clean_text(
            os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
        )
        if not validate_password(password):
            print("❌ Password must be at least 6 characters")
            return 2
        try:
            recovery_code = await create_admin(
                users, nickname, password, clean_text(args.city)
            )
        except DuplicateNicknameError:
            print(f"❌ {nickname} already exists; use --promote")
            return 1
        print(f"✅ Admin {nickname} created")
        print(f"Recovery code (shown once): {recovery_code}")
        return 0
    finally:
        await client.close()


def main() -> None:
    sys.exit(asyncio.run(run(parse_args())))


if __name__ == "__main__":
    main()
