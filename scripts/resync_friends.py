#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.core.config import settings
from app.db.redis import redis_client
from app.db.session import AsyncSessionLocal
from app.services.relationship_cache import RelationshipCache
from app.services.resync import ResyncStats, resync

logger = logging.getLogger("resync_friends")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Copy friendships and pending friend requests from the database into Redis."
    )
    parser.add_argument(
        "--account-id",
        type=int,
        default=None,
        help="Only resync rows involving this account. Without it every account is resynced.",
    )
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Delete the affected cache keys first so stale entries do not survive.",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.resync_batch_size,
        help="Number of rows read per query.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log row-level actions.")
    args = parser.parse_args(argv)

    if args.account_id is not None and args.account_id < 1:
        parser.error("--account-id must be a positive integer.")
    if args.batch_size <= 0:
        parser.error("--batch-size must be greater than 0.")

    return args


def _print_summary(*, account_id: int | None, rebuilt: bool, stats: ResyncStats) -> None:
    print("Friend cache resync complete")
    print(f"scope: {'all' if account_id is None else f'account {account_id}'}")
    print(f"rebuild: {'yes' if rebuilt else 'no'}")
    print(f"friend_edges: {stats.friend_edges}")
    print(f"pending_requests: {stats.pending_requests}")


async def _main_async(args: argparse.Namespace) -> ResyncStats:
    cache = RelationshipCache(redis_client)
    try:
        if args.rebuild:
            if args.account_id is None:
                await cache.clear_all()
            else:
                await cache.clear_account(args.account_id)

        async with AsyncSessionLocal() as db:
            return await resync(db, cache, account_id=args.account_id, batch_size=args.batch_size)
    finally:
        await redis_client.aclose()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    stats = asyncio.run(_main_async(args))
    _print_summary(account_id=args.account_id, rebuilt=args.rebuild, stats=stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
