#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.core.config import settings
from app.db.redis import redis_client
from app.db.session import AsyncSessionLocal
from app.services.sync_queue import SyncConsumer, SyncQueue

logger = logging.getLogger("run_sync_worker")


def _parse_shards(raw: str | None, total: int) -> list[int]:
    if raw is None or not raw.strip():
        return list(range(total))
    shards: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            value = int(part)
        except ValueError:
            raise ValueError(f"invalid shard {part!r}") from None
        if value < 0 or value >= total:
            raise ValueError(f"shard {value} out of range 0..{total - 1}")
        if value not in shards:
            shards.append(value)
    return shards


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Apply queued friend relationship changes to the database."
    )
    parser.add_argument(
        "--shards",
        default=None,
        help=f"Comma separated shard numbers to consume (default: all {settings.sync_queue_shards}).",
    )
    parser.add_argument(
        "--drain",
        action="store_true",
        help="Process what is queued right now and exit instead of waiting for more.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every applied intent.")
    args = parser.parse_args(argv)

    try:
        args.shard_list = _parse_shards(args.shards, settings.sync_queue_shards)
    except ValueError as exc:
        parser.error(str(exc))

    return args


async def _main_async(args: argparse.Namespace) -> int:
    sync_queue = SyncQueue(redis_client)
    consumers = [SyncConsumer(sync_queue, AsyncSessionLocal, shard) for shard in args.shard_list]

    try:
        if args.drain:
            handled = 0
            for consumer in consumers:
                handled += await consumer.drain()
            return handled

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:  # pragma: no cover - windows
                pass

        await asyncio.gather(*(c.run(stop) for c in consumers))
        return sum(c.stats.applied for c in consumers)
    finally:
        await redis_client.aclose()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    handled = asyncio.run(_main_async(args))
    print(f"intents handled: {handled}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
