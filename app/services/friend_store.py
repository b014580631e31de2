from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.friend_edge import FriendEdge
from app.models.friend_request import FriendRequest
from app.services.accounts import parse_account_id

if TYPE_CHECKING:
    from app.services.sync_queue import SyncIntent


async def _ensure_request(db: AsyncSession, from_id: int, to_id: int) -> None:
    q = sa.select(FriendRequest.id).where(
        FriendRequest.from_account_id == from_id,
        FriendRequest.to_account_id == to_id,
    )
    if (await db.execute(q)).scalar_one_or_none() is None:
        db.add(FriendRequest(from_account_id=from_id, to_account_id=to_id))


async def _ensure_edge(db: AsyncSession, account_id: int, related_id: int) -> None:
    q = sa.select(FriendEdge.id).where(
        FriendEdge.account_id == account_id,
        FriendEdge.related_account_id == related_id,
    )
    if (await db.execute(q)).scalar_one_or_none() is None:
        db.add(FriendEdge(account_id=account_id, related_account_id=related_id))


async def _delete_request(db: AsyncSession, from_id: int, to_id: int) -> None:
    await db.execute(
        sa.delete(FriendRequest).where(
            FriendRequest.from_account_id == from_id,
            FriendRequest.to_account_id == to_id,
        )
    )


async def _delete_edges(db: AsyncSession, a: int, b: int) -> None:
    await db.execute(
        sa.delete(FriendEdge).where(
            sa.or_(
                sa.and_(FriendEdge.account_id == a, FriendEdge.related_account_id == b),
                sa.and_(FriendEdge.account_id == b, FriendEdge.related_account_id == a),
            )
        )
    )


async def apply_intent(db: AsyncSession, intent: "SyncIntent") -> None:
    """
    Write one relationship change to the database.

    Every branch converges: running the same intent again leaves the tables as they
    are. Does not commit; the caller owns the transaction.
    """
    actor = parse_account_id(intent.actor)
    target = parse_account_id(intent.target)
    if actor is None or target is None or actor == target:
        raise ValueError("invalid_accounts")

    if intent.task == "add":
        await _ensure_request(db, actor, target)
    elif intent.task == "confirm":
        await _ensure_edge(db, actor, target)
        await _ensure_edge(db, target, actor)
        await _delete_request(db, target, actor)
    elif intent.task == "ignore":
        await _delete_request(db, target, actor)
    elif intent.task == "remove":
        await _delete_edges(db, actor, target)
        await _delete_request(db, actor, target)
        await _delete_request(db, target, actor)
    else:
        raise ValueError("unknown_task")

    await db.flush()


# -- reads used by resync --------------------------------------------------------


async def load_edge_batch(
    db: AsyncSession,
    *,
    account_id: int | None,
    after_id: int | None,
    batch_size: int,
) -> list[FriendEdge]:
    q = sa.select(FriendEdge).order_by(FriendEdge.id.asc()).limit(batch_size)
    if account_id is not None:
        q = q.where(
            sa.or_(
                FriendEdge.account_id == account_id,
                FriendEdge.related_account_id == account_id,
            )
        )
    if after_id is not None:
        q = q.where(FriendEdge.id > after_id)
    return list((await db.execute(q)).scalars())


async def load_request_batch(
    db: AsyncSession,
    *,
    account_id: int | None,
    after_id: int | None,
    batch_size: int,
) -> list[FriendRequest]:
    q = sa.select(FriendRequest).order_by(FriendRequest.id.asc()).limit(batch_size)
    if account_id is not None:
        q = q.where(
            sa.or_(
                FriendRequest.from_account_id == account_id,
                FriendRequest.to_account_id == account_id,
            )
        )
    if after_id is not None:
        q = q.where(FriendRequest.id > after_id)
    return list((await db.execute(q)).scalars())
