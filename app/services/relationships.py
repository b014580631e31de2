from __future__ import annotations

import enum
import logging
from typing import Any

from redis.exceptions import RedisError

from app.services.accounts import parse_account_id
from app.services.relationship_cache import RelationshipCache
from app.services.relationship_events import (
    FRIEND_REQUEST_EVENT,
    HOOK_FRIEND_REMOVED,
    HOOK_FRIEND_REQUEST_SENT,
    RelationshipEvents,
)
from app.services.sync_queue import SyncIntent, SyncQueue, SyncTask


logger = logging.getLogger(__name__)


class RelationshipStatus(enum.IntEnum):
    """Status of ``other`` as seen from the viewing account."""

    INVALID = -1
    STRANGERS = 1
    FRIENDS = 2
    REQUEST_SENT = 3
    REQUEST_RECEIVED = 4


def _pair(account_id: object, other_id: object) -> tuple[int, int] | None:
    a = parse_account_id(account_id)
    b = parse_account_id(other_id)
    if a is None or b is None or a == b:
        return None
    return a, b


class RelationshipEngine:
    """
    Friend relationships between global accounts.

    Reads come from the Redis cache. Writes queue a sync intent for the database
    first and then change the cache before returning, so callers read their own
    writes straight away while the database catches up in the background.

    The intent is queued before the precondition check. A rejected request can
    therefore still reach the database consumer, whose writes are idempotent.
    A queue failure raises ``SyncQueueError`` and leaves the cache untouched.
    """

    def __init__(self, cache: RelationshipCache, sync_queue: SyncQueue, events: RelationshipEvents) -> None:
        self.cache = cache
        self.sync_queue = sync_queue
        self.events = events

    # -- reads --------------------------------------------------------------

    async def get_relationship(self, account_id: object, other_id: object) -> RelationshipStatus:
        pair = _pair(account_id, other_id)
        if pair is None:
            return RelationshipStatus.INVALID
        me, other = pair

        # A friendship wins over any pending entries a partial failure left behind.
        if await self.cache.is_friend(me, other):
            return RelationshipStatus.FRIENDS
        if await self.cache.has_received_request(me, other):
            return RelationshipStatus.REQUEST_RECEIVED
        if await self.cache.has_received_request(other, me):
            return RelationshipStatus.REQUEST_SENT
        return RelationshipStatus.STRANGERS

    async def get_friends(self, account_id: object) -> set[int]:
        account = parse_account_id(account_id)
        if account is None:
            return set()
        return await self.cache.friends(account)

    async def get_friend_count(self, account_id: object) -> int:
        account = parse_account_id(account_id)
        if account is None:
            return 0
        return await self.cache.friend_count(account)

    async def get_received_requests(self, account_id: object) -> dict[int, dict[str, Any]]:
        account = parse_account_id(account_id)
        if account is None:
            return {}
        return await self.cache.received_requests(account)

    async def get_sent_requests(self, account_id: object) -> set[int]:
        account = parse_account_id(account_id)
        if account is None:
            return set()
        return await self.cache.sent_requests(account)

    # -- writes -------------------------------------------------------------

    async def _queue(self, task: SyncTask, actor: int, target: int) -> None:
        await self.sync_queue.queue(SyncIntent(task=task, actor=actor, target=target))

    async def send_request(self, account_id: object, other_id: object) -> bool:
        pair = _pair(account_id, other_id)
        if pair is None:
            return False
        me, other = pair

        # Queued before the status check in case the cache is behind the database.
        await self._queue("add", me, other)
        if await self.get_relationship(me, other) != RelationshipStatus.STRANGERS:
            return False

        try:
            await self.cache.add_request(me, other)
        except RedisError:
            logger.exception("cache write failed op=send actor=%s target=%s", me, other)
            return False

        self.events.notify(FRIEND_REQUEST_EVENT, me, other, {"target_account_id": other})
        self.events.run_hook(HOOK_FRIEND_REQUEST_SENT, me, other)
        return True

    async def accept_request(self, account_id: object, other_id: object) -> bool:
        return await self._respond(account_id, other_id, accept=True)

    async def ignore_request(self, account_id: object, other_id: object) -> bool:
        return await self._respond(account_id, other_id, accept=False)

    async def _respond(self, account_id: object, other_id: object, *, accept: bool) -> bool:
        pair = _pair(account_id, other_id)
        if pair is None:
            return False
        me, other = pair

        await self._queue("confirm" if accept else "ignore", me, other)
        if await self.get_relationship(me, other) != RelationshipStatus.REQUEST_RECEIVED:
            return False

        try:
            await self.cache.resolve_request(other, me, accept=accept)
        except RedisError:
            logger.exception("cache write failed op=%s actor=%s target=%s", "accept" if accept else "ignore", me, other)
            return False
        return True

    async def remove_friend(self, account_id: object, other_id: object) -> bool:
        """
        Drop every trace of a relationship between the two accounts, whatever the
        current status is. Also used to cancel a sent request.
        """
        pair = _pair(account_id, other_id)
        if pair is None:
            return False
        me, other = pair

        await self._queue("remove", me, other)
        try:
            await self.cache.remove_all_between(me, other)
        except RedisError:
            logger.exception("cache write failed op=remove actor=%s target=%s", me, other)
            return False

        self.events.run_hook(HOOK_FRIEND_REMOVED, me, other)
        return True
