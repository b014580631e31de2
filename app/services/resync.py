from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.services.friend_store import load_edge_batch, load_request_batch
from app.services.relationship_cache import RelationshipCache, request_metadata


logger = logging.getLogger(__name__)


@dataclass
class ResyncStats:
    friend_edges: int = 0
    pending_requests: int = 0


async def resync(
    db: AsyncSession,
    cache: RelationshipCache,
    *,
    account_id: int | None = None,
    batch_size: int | None = None,
) -> ResyncStats:
    """
    Copy relationships from the database into the cache.

    ``account_id=None`` covers every account; otherwise only rows that mention the
    account are read. Cache entries are only ever added, never removed, so keys the
    database no longer backs survive a resync. Clear them first for a full rebuild.
    """
    if account_id is not None and account_id < 1:
        raise ValueError("account_id must be a positive integer")
    size = batch_size or settings.resync_batch_size
    if size <= 0:
        raise ValueError("batch_size must be greater than 0")

    stats = ResyncStats()

    after_id: int | None = None
    while True:
        edges = await load_edge_batch(db, account_id=account_id, after_id=after_id, batch_size=size)
        if not edges:
            break
        await cache.upsert_friendships((e.account_id, e.related_account_id) for e in edges)
        for e in edges:
            logger.info("added friendship between account ids %s and %s", e.account_id, e.related_account_id)
        stats.friend_edges += len(edges)
        after_id = edges[-1].id

    after_id = None
    while True:
        requests = await load_request_batch(db, account_id=account_id, after_id=after_id, batch_size=size)
        if not requests:
            break
        await cache.upsert_requests(
            (r.from_account_id, r.to_account_id, request_metadata(r.created_at)) for r in requests
        )
        for r in requests:
            logger.info("added pending request from account id %s to %s", r.from_account_id, r.to_account_id)
        stats.pending_requests += len(requests)
        after_id = requests[-1].id

    # End the read transaction and release any snapshot state.
    await db.rollback()
    return stats
