from __future__ import annotations

from collections.abc import AsyncGenerator

import redis.asyncio as redis

from app.core.config import settings


redis_client: redis.Redis = redis.from_url(
    settings.redis_url,
    decode_responses=True,
    health_check_interval=30,
)


async def get_redis() -> AsyncGenerator[redis.Redis, None]:
    yield redis_client
