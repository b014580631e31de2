from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User


def parse_account_id(value: object) -> int | None:
    """Return a valid account id or None. Zero, negatives and junk are all invalid."""
    if value is None or isinstance(value, bool):
        return None
    try:
        account_id = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return account_id if account_id > 0 else None


async def account_id_for_local_user(db: AsyncSession, user_id: UUID) -> int | None:
    q = sa.select(User.account_id).where(User.id == user_id)
    return (await db.execute(q)).scalar_one_or_none()


async def local_user_id_for_account(db: AsyncSession, account_id: int) -> UUID | None:
    if parse_account_id(account_id) is None:
        return None
    q = sa.select(User.id).where(User.account_id == account_id)
    return (await db.execute(q)).scalar_one_or_none()


async def users_for_accounts(db: AsyncSession, account_ids: Iterable[int]) -> dict[int, User]:
    ids = {a for a in account_ids if parse_account_id(a) is not None}
    if not ids:
        return {}
    rows = (await db.execute(sa.select(User).where(User.account_id.in_(ids)))).scalars().all()
    return {u.account_id: u for u in rows}
