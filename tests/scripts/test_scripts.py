from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from db.database import USERS
from scripts.generate_access_codes import CODE_LENGTHS, env_lines, generate_codes, memorable_codes
from scripts.hash_access_codes import hash_lines, main as hash_main, strength_warnings
from scripts.seed_admin import upsert_admin


def _db_with(collection):
    db = MagicMock()
    db.__getitem__.side_effect = lambda name: collection if name == USERS else MagicMock()
    return db


@pytest.mark.asyncio
async def test_upsert_admin_creates_missing_admin():
    # Arrange
    users = MagicMock()
    users.find_one = AsyncMock(return_value=None)
    new_id = ObjectId()
    users.insert_one = AsyncMock(return_value=MagicMock(inserted_id=new_id))

    # Act
    doc = await upsert_admin(_db_with(users), name="Studio Admin", email=" Boss@Example.com ")

    # Assert
    users.find_one.assert_awaited_once_with({"email": "boss@example.com"})
    inserted = users.insert_one.await_args.args[0]
    assert inserted["role"] == "admin"
    assert inserted["email"] == "boss@example.com"
    assert doc["_id"] == new_id


@pytest.mark.asyncio
async def test_upsert_admin_promotes_existing_user():
    existing = {"_id": ObjectId(), "email": "boss@example.com", "role": "user"}
    users = MagicMock()
    users.find_one = AsyncMock(return_value=existing)
    users.update_one = AsyncMock()
    users.insert_one = AsyncMock()

    doc = await upsert_admin(_db_with(users), name="ignored", email="boss@example.com")

    assert doc["role"] == "admin"
    update = users.update_one.await_args.args[1]
    assert update["$set"]["role"] == "admin"
    users.insert_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_upsert_admin_leaves_existing_admin_untouched():
    users = MagicMock()
    users.find_one = AsyncMock(return_value={"_id": ObjectId(), "email": "a@example.com", "role": "admin"})
    users.update_one = AsyncMock()

    await upsert_admin(_db_with(users), name="A", email="a@example.com")

    users.update_one.assert_not_awaited()


def test_generated_codes_and_env_lines(fast_passwords):
    codes = generate_codes(fast_passwords)

    assert {role: len(code) for role, code in codes.items()} == CODE_LENGTHS
    lines = env_lines(codes, fast_passwords)
    assert f'ADMIN_ACCESS_CODE="{codes["ADMIN"]}"' in lines
    hash_line = next(line for line in lines if line.startswith("ADMIN_ACCESS_CODE_HASH="))
    assert fast_passwords.verify_password(codes["ADMIN"], hash_line.split("=", 1)[1].strip('"'))


def test_memorable_codes_use_role_prefixes(fast_passwords):
    codes = memorable_codes(fast_passwords)

    assert codes["USER"].startswith("BAND-")
    assert len(codes["ADMIN"]) == len("ADMIN-") + 8


def test_strength_warnings_flag_weak_codes(fast_passwords):
    warnings = strength_warnings({"GUEST": "weak", "ADMIN": "Strong-Admin-123"}, fast_passwords)

    assert warnings == ["GUEST: Access code must be at least 12 characters long"]


def test_hash_script_prints_only_hashes(fast_passwords, mocker, capsys):
    mocker.patch("scripts.hash_access_codes.PasswordManager", return_value=fast_passwords)
    answers = iter(["Guest-Code-123", "User-Code-1234", "Admin-Code-12345"])

    hash_main(prompt=lambda _: next(answers))

    out = capsys.readouterr().out
    assert "Admin-Code-12345" not in out
    assert out.count("_ACCESS_CODE_HASH=") == 3
    assert hash_lines({"USER": "x"}, fast_passwords)[0].startswith('USER_ACCESS_CODE_HASH="$2')
