from __future__ import annotations

from pydantic import BaseModel


class MeResponse(BaseModel):
    id: str
    account_id: int
    email: str
    username: str
    display_name: str
    avatar_url: str | None = None
