from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Literal

import redis.asyncio as redis
from pydantic import BaseModel, ConfigDict, ValidationError
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.services.friend_store import apply_intent


logger = logging.getLogger(__name__)

SyncTask = Literal["add", "confirm", "ignore", "remove"]


class SyncQueueError(RuntimeError):
    """The intent could not be handed to the queue; the caller must not carry on."""


class SyncIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    task: SyncTask
    actor: int
    target: int

    def to_payload(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_payload(cls, raw: str) -> "SyncIntent":
        return cls.model_validate_json(raw)


class SyncQueue:
    """
    Redis list transport for sync intents.

    Intents are sharded by actor, so every intent of one actor sits in a single FIFO
    list. Consumers move the head into a per-shard processing list and only remove it
    once the database write is committed, which makes delivery at-least-once.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        prefix: str | None = None,
        shards: int | None = None,
        enqueue_timeout: float | None = None,
    ) -> None:
        self.client = client
        self.prefix = prefix or settings.sync_queue_prefix
        self.shards = shards or settings.sync_queue_shards
        self.enqueue_timeout = enqueue_timeout or settings.sync_enqueue_timeout_seconds

    def shard_for(self, actor: int) -> int:
        return actor % self.shards

    def queue_key(self, shard: int) -> str:
        return f"{self.prefix}:queue:{shard}"

    def processing_key(self, shard: int) -> str:
        return f"{self.prefix}:processing:{shard}"

    def dead_key(self, shard: int) -> str:
        return f"{self.prefix}:dead:{shard}"

    async def queue(self, intent: SyncIntent) -> None:
        key = self.queue_key(self.shard_for(intent.actor))
        try:
            await asyncio.wait_for(self.client.rpush(key, intent.to_payload()), timeout=self.enqueue_timeout)
        except asyncio.TimeoutError as exc:
            raise SyncQueueError(f"enqueue timed out after {self.enqueue_timeout}s") from exc
        except RedisError as exc:
            raise SyncQueueError(f"enqueue failed: {exc}") from exc
        logger.debug("queued task=%s actor=%s target=%s key=%s", intent.task, intent.actor, intent.target, key)

    async def claim(self, shard: int, *, block_seconds: float | None = None) -> str | None:
        src, dst = self.queue_key(shard), self.processing_key(shard)
        if block_seconds:
            return await self.client.blmove(src, dst, block_seconds, "LEFT", "RIGHT")
        return await self.client.lmove(src, dst, "LEFT", "RIGHT")

    async def ack(self, shard: int, payload: str) -> None:
        await self.client.lrem(self.processing_key(shard), 1, payload)

    async def dead_letter(self, shard: int, payload: str, reason: str) -> None:
        record = json.dumps({"payload": payload, "reason": reason})
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.rpush(self.dead_key(shard), record)
            pipe.lrem(self.processing_key(shard), 1, payload)
            await pipe.execute()

    async def recover(self, shard: int) -> int:
        """Put intents a dead consumer left in flight back at the head, oldest first."""
        moved = 0
        while await self.client.lmove(self.processing_key(shard), self.queue_key(shard), "RIGHT", "LEFT") is not None:
            moved += 1
        if moved:
            logger.warning("recovered in-flight intents shard=%s count=%s", shard, moved)
        return moved

    async def pending(self, shard: int) -> int:
        return int(await self.client.llen(self.queue_key(shard)))

    async def in_flight(self, shard: int) -> int:
        return int(await self.client.llen(self.processing_key(shard)))

    async def dead_letters(self, shard: int) -> list[dict]:
        return [json.loads(r) for r in await self.client.lrange(self.dead_key(shard), 0, -1)]


@dataclass
class ConsumerStats:
    applied: int = 0
    retries: int = 0
    dead_lettered: int = 0


class SyncConsumer:
    """Applies queued intents of one shard to the database, in queue order."""

    def __init__(
        self,
        sync_queue: SyncQueue,
        session_factory: async_sessionmaker[AsyncSession],
        shard: int = 0,
        *,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        self.sync_queue = sync_queue
        self.session_factory = session_factory
        self.shard = shard
        self.max_attempts = max_attempts or settings.sync_max_attempts
        self.backoff_seconds = settings.sync_retry_backoff_seconds if backoff_seconds is None else backoff_seconds
        self.stats = ConsumerStats()

    async def _apply(self, intent: SyncIntent) -> None:
        async with self.session_factory() as db:
            try:
                await apply_intent(db, intent)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    async def _handle(self, payload: str) -> None:
        try:
            intent = SyncIntent.from_payload(payload)
        except ValidationError:
            logger.error("dropping malformed intent shard=%s payload=%r", self.shard, payload)
            await self.sync_queue.dead_letter(self.shard, payload, "malformed")
            self.stats.dead_lettered += 1
            return

        # Retry in place so later intents of the same actor never overtake this one.
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self._apply(intent)
            except ValueError as exc:
                logger.error("rejected intent task=%s actor=%s target=%s reason=%s", intent.task, intent.actor, intent.target, exc)
                await self.sync_queue.dead_letter(self.shard, payload, str(exc))
                self.stats.dead_lettered += 1
                return
            except SQLAlchemyError as exc:
                logger.warning(
                    "store write failed task=%s actor=%s target=%s attempt=%s/%s",
                    intent.task,
                    intent.actor,
                    intent.target,
                    attempt,
                    self.max_attempts,
                    exc_info=exc,
                )
                if attempt < self.max_attempts:
                    self.stats.retries += 1
                    await asyncio.sleep(self.backoff_seconds * attempt)
                    continue
                logger.error("giving up on intent task=%s actor=%s target=%s", intent.task, intent.actor, intent.target)
                await self.sync_queue.dead_letter(self.shard, payload, "store_failure")
                self.stats.dead_lettered += 1
                return

            await self.sync_queue.ack(self.shard, payload)
            self.stats.applied += 1
            logger.info("applied task=%s actor=%s target=%s", intent.task, intent.actor, intent.target)
            return

    async def process_one(self, *, block_seconds: float | None = None) -> bool:
        payload = await self.sync_queue.claim(self.shard, block_seconds=block_seconds)
        if payload is None:
            return False
        await self._handle(payload)
        return True

    async def drain(self) -> int:
        """Process until the shard is empty. Returns the number of intents handled."""
        await self.sync_queue.recover(self.shard)
        handled = 0
        while await self.process_one():
            handled += 1
        return handled

    async def run(self, stop: asyncio.Event, *, poll_seconds: float | None = None) -> None:
        poll = poll_seconds or settings.sync_poll_timeout_seconds
        await self.sync_queue.recover(self.shard)
        logger.info("sync consumer started shard=%s", self.shard)
        while not stop.is_set():
            try:
                # An intent whose ack failed is still in flight and must go before anything queued after it.
                if await self.sync_queue.in_flight(self.shard):
                    await self.sync_queue.recover(self.shard)
                await self.process_one(block_seconds=poll)
            except RedisError:
                logger.warning("queue unavailable shard=%s", self.shard, exc_info=True)
                await asyncio.sleep(self.backoff_seconds or 1.0)
        logger.info("sync consumer stopped shard=%s stats=%s", self.shard, self.stats)
