from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any


class FriendActionRequest(BaseModel):
    account_id: int = Field(gt=0)


class FriendActionResponse(BaseModel):
    ok: bool


class FriendListItem(BaseModel):
    account_id: int
    user_id: str | None = None
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None


class FriendCountResponse(BaseModel):
    account_id: int
    count: int


class ReceivedRequestItem(FriendListItem):
    metadata: dict[str, Any] = Field(default_factory=dict)


class RelationshipResponse(BaseModel):
    account_id: int
    status: str
