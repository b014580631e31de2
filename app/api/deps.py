from __future__ import annotations

from collections.abc import AsyncGenerator
import uuid

import redis.asyncio as redis
from fastapi import Cookie, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_access_token
from app.db.redis import get_redis
from app.db.session import get_db_session
from app.models.user import User
from app.services.relationship_cache import RelationshipCache
from app.services.relationship_events import relationship_events
from app.services.relationships import RelationshipEngine
from app.services.sync_queue import SyncQueue

COOKIE_NAME = "access_token"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db_session():
        yield session


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    access_token: str | None = Cookie(default=None, alias=COOKIE_NAME),
) -> User:
    if not access_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    sub = decode_access_token(access_token)
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        user_id = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        # This is the “stale cookie / DB reset” case
        raise HTTPException(status_code=401, detail="User not found")

    return user


async def get_relationship_engine(
    client: redis.Redis = Depends(get_redis),
) -> RelationshipEngine:
    return RelationshipEngine(
        cache=RelationshipCache(client),
        sync_queue=SyncQueue(client),
        events=relationship_events,
    )
