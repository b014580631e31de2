import uuid

import pytest

from app.services.accounts import (
    account_id_for_local_user,
    local_user_id_for_account,
    parse_account_id,
    users_for_accounts,
)


@pytest.mark.parametrize(
    "raw, expected",
    [(1, 1), ("42", 42), (0, None), (-7, None), ("abc", None), (None, None), (True, None)],
)
def test_parse_account_id(raw, expected):
    assert parse_account_id(raw) == expected


@pytest.mark.anyio
async def test_account_resolution_round_trip(db_session, user_factory):
    a = await user_factory(31)
    await user_factory(32)

    user_id = uuid.UUID(a["id"])
    assert await account_id_for_local_user(db_session, user_id) == 31
    assert await local_user_id_for_account(db_session, 31) == user_id

    assert await account_id_for_local_user(db_session, uuid.uuid4()) is None
    assert await local_user_id_for_account(db_session, 99) is None
    assert await local_user_id_for_account(db_session, 0) is None


@pytest.mark.anyio
async def test_users_for_accounts_skips_unknown_and_invalid(db_session, user_factory):
    await user_factory(31)
    await user_factory(32)

    users = await users_for_accounts(db_session, [31, 32, 33, 0])
    assert sorted(users) == [31, 32]
    assert users[31].account_id == 31

    assert await users_for_accounts(db_session, []) == {}
