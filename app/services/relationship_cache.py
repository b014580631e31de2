from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis


logger = logging.getLogger(__name__)


def friend_list_key(account_id: int) -> str:
    return f"friendlist:{account_id}"


def received_requests_key(account_id: int) -> str:
    return f"friendrequests:{account_id}"


def sent_requests_key(account_id: int) -> str:
    return f"friendrequests:{account_id}:sent"


def request_metadata(requested_at: datetime | None = None) -> str:
    when = requested_at or datetime.now(timezone.utc)
    if when.tzinfo is None:
        # sqlite hands back naive datetimes
        when = when.replace(tzinfo=timezone.utc)
    return json.dumps({"requested_at": when.isoformat()})


def _decode_metadata(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


class RelationshipCache:
    """
    Redis view of the relationship graph.

    - ``friendlist:{id}``            set of friend account ids
    - ``friendrequests:{id}``        hash of sender account id -> JSON metadata
    - ``friendrequests:{id}:sent``   set of account ids this account asked

    Nothing here is authoritative; every key can be rebuilt from the database.
    """

    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    # -- reads --------------------------------------------------------------

    async def is_friend(self, account_id: int, other_id: int) -> bool:
        return bool(await self.client.sismember(friend_list_key(account_id), str(other_id)))

    async def has_received_request(self, account_id: int, from_id: int) -> bool:
        return bool(await self.client.hexists(received_requests_key(account_id), str(from_id)))

    async def friends(self, account_id: int) -> set[int]:
        return {int(m) for m in await self.client.smembers(friend_list_key(account_id))}

    async def friend_count(self, account_id: int) -> int:
        return int(await self.client.scard(friend_list_key(account_id)))

    async def received_requests(self, account_id: int) -> dict[int, dict[str, Any]]:
        raw = await self.client.hgetall(received_requests_key(account_id))
        return {int(k): _decode_metadata(v) for k, v in raw.items()}

    async def sent_requests(self, account_id: int) -> set[int]:
        return {int(m) for m in await self.client.smembers(sent_requests_key(account_id))}

    # -- writes -------------------------------------------------------------

    async def add_request(self, from_id: int, to_id: int, metadata: str | None = None) -> None:
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.hset(received_requests_key(to_id), str(from_id), metadata or request_metadata())
            pipe.sadd(sent_requests_key(from_id), str(to_id))
            await pipe.execute()

    async def resolve_request(self, from_id: int, to_id: int, *, accept: bool) -> None:
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.hdel(received_requests_key(to_id), str(from_id))
            pipe.srem(sent_requests_key(from_id), str(to_id))
            if accept:
                pipe.sadd(friend_list_key(to_id), str(from_id))
                pipe.sadd(friend_list_key(from_id), str(to_id))
            await pipe.execute()

    async def remove_all_between(self, a: int, b: int) -> None:
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.hdel(received_requests_key(b), str(a))
            pipe.hdel(received_requests_key(a), str(b))
            pipe.srem(sent_requests_key(b), str(a))
            pipe.srem(sent_requests_key(a), str(b))
            pipe.srem(friend_list_key(b), str(a))
            pipe.srem(friend_list_key(a), str(b))
            await pipe.execute()

    # -- rebuild ------------------------------------------------------------
    # Upserts only; safe to run next to live traffic.

    async def upsert_friendships(self, pairs: Iterable[tuple[int, int]]) -> None:
        async with self.client.pipeline(transaction=False) as pipe:
            for a, b in pairs:
                pipe.sadd(friend_list_key(a), str(b))
                pipe.sadd(friend_list_key(b), str(a))
            await pipe.execute()

    async def upsert_requests(self, requests: Iterable[tuple[int, int, str]]) -> None:
        async with self.client.pipeline(transaction=False) as pipe:
            for from_id, to_id, metadata in requests:
                pipe.hset(received_requests_key(to_id), str(from_id), metadata)
                pipe.sadd(sent_requests_key(from_id), str(to_id))
            await pipe.execute()

    async def clear_account(self, account_id: int) -> int:
        """Drop the account's keys and its entries in every counterpart's keys."""
        me = str(account_id)
        friends = await self.friends(account_id)
        senders = await self.client.hkeys(received_requests_key(account_id))
        targets = await self.sent_requests(account_id)

        async with self.client.pipeline(transaction=True) as pipe:
            for other in friends:
                pipe.srem(friend_list_key(other), me)
            for other in senders:
                pipe.srem(sent_requests_key(int(other)), me)
            for other in targets:
                pipe.hdel(received_requests_key(other), me)
            pipe.delete(
                friend_list_key(account_id),
                received_requests_key(account_id),
                sent_requests_key(account_id),
            )
            results = await pipe.execute()
        removed = results[-1]
        logger.info("cleared relationship cache account_id=%s keys=%s", account_id, removed)
        return int(removed)

    async def clear_all(self) -> int:
        removed = 0
        for pattern in ("friendlist:*", "friendrequests:*"):
            batch: list[str] = []
            async for key in self.client.scan_iter(match=pattern, count=500):
                batch.append(key)
                if len(batch) >= 500:
                    removed += await self.client.delete(*batch)
                    batch = []
            if batch:
                removed += await self.client.delete(*batch)
        logger.info("cleared relationship cache for all accounts keys=%s", removed)
        return int(removed)
