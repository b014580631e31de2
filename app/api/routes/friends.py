from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db, get_relationship_engine
from app.api.http_errors import sync_unavailable, value_error
from app.models.user import User
from app.schemas.friends import (
    FriendActionRequest,
    FriendActionResponse,
    FriendCountResponse,
    FriendListItem,
    ReceivedRequestItem,
    RelationshipResponse,
)
from app.services.accounts import users_for_accounts
from app.services.relationships import RelationshipEngine, RelationshipStatus
from app.services.sync_queue import SyncQueueError

router = APIRouter(prefix="/friends", tags=["friends"])

_ERROR_STATUSES = {
    "invalid_account": 400,
    "cannot_friend_self": 400,
    "relationship_conflict": 409,
}
_ERROR_DETAILS = {
    "invalid_account": "Invalid account id",
    "cannot_friend_self": "You cannot friend yourself",
    "relationship_conflict": "Relationship does not allow this action",
}


def _item(account_id: int, user: User | None) -> FriendListItem:
    if user is None:
        return FriendListItem(account_id=account_id)
    return FriendListItem(
        account_id=account_id,
        user_id=str(user.id),
        username=user.username,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
    )


async def _present(db: AsyncSession, account_ids: Iterable[int]) -> list[FriendListItem]:
    ordered = sorted(account_ids)
    users = await users_for_accounts(db, ordered)
    return [_item(a, users.get(a)) for a in ordered]


async def _perform(
    action: Callable[[int, int], Awaitable[bool]],
    user: User,
    other_account_id: int,
) -> FriendActionResponse:
    try:
        if other_account_id == user.account_id:
            raise ValueError("cannot_friend_self")
        if not await action(user.account_id, other_account_id):
            raise ValueError("relationship_conflict")
    except SyncQueueError as e:
        raise sync_unavailable(e) from e
    except ValueError as e:
        raise value_error(e, code_statuses=_ERROR_STATUSES, detail_overrides=_ERROR_DETAILS) from e
    return FriendActionResponse(ok=True)


@router.get("", response_model=list[FriendListItem])
async def get_my_friends(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    engine: RelationshipEngine = Depends(get_relationship_engine),
):
    return await _present(db, await engine.get_friends(user.account_id))


@router.get("/count", response_model=FriendCountResponse)
async def get_my_friend_count(
    user: User = Depends(get_current_user),
    engine: RelationshipEngine = Depends(get_relationship_engine),
):
    return FriendCountResponse(account_id=user.account_id, count=await engine.get_friend_count(user.account_id))


@router.get("/requests", response_model=list[ReceivedRequestItem])
async def get_received_requests(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    engine: RelationshipEngine = Depends(get_relationship_engine),
):
    received = await engine.get_received_requests(user.account_id)
    items = await _present(db, received.keys())
    return [ReceivedRequestItem(**i.model_dump(), metadata=received[i.account_id]) for i in items]


@router.get("/requests/sent", response_model=list[FriendListItem])
async def get_sent_requests(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    engine: RelationshipEngine = Depends(get_relationship_engine),
):
    return await _present(db, await engine.get_sent_requests(user.account_id))


@router.get("/accounts/{account_id}", response_model=list[FriendListItem])
async def get_account_friends(
    account_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
    engine: RelationshipEngine = Depends(get_relationship_engine),
):
    if account_id < 1:
        raise value_error(ValueError("invalid_account"), code_statuses=_ERROR_STATUSES, detail_overrides=_ERROR_DETAILS)
    return await _present(db, await engine.get_friends(account_id))


@router.get("/relationship/{account_id}", response_model=RelationshipResponse)
async def get_relationship(
    account_id: int,
    user: User = Depends(get_current_user),
    engine: RelationshipEngine = Depends(get_relationship_engine),
):
    status = await engine.get_relationship(user.account_id, account_id)
    if status == RelationshipStatus.INVALID:
        code = "cannot_friend_self" if account_id == user.account_id else "invalid_account"
        raise value_error(ValueError(code), code_statuses=_ERROR_STATUSES, detail_overrides=_ERROR_DETAILS)
    return RelationshipResponse(account_id=account_id, status=status.name.lower())


@router.post("/request", response_model=FriendActionResponse)
async def send_request(
    payload: FriendActionRequest,
    user: User = Depends(get_current_user),
    engine: RelationshipEngine = Depends(get_relationship_engine),
):
    return await _perform(engine.send_request, user, payload.account_id)


@router.post("/accept", response_model=FriendActionResponse)
async def accept_request(
    payload: FriendActionRequest,
    user: User = Depends(get_current_user),
    engine: RelationshipEngine = Depends(get_relationship_engine),
):
    return await _perform(engine.accept_request, user, payload.account_id)


@router.post("/ignore", response_model=FriendActionResponse)
async def ignore_request(
    payload: FriendActionRequest,
    user: User = Depends(get_current_user),
    engine: RelationshipEngine = Depends(get_relationship_engine),
):
    return await _perform(engine.ignore_request, user, payload.account_id)


@router.post("/remove", response_model=FriendActionResponse)
async def remove_friend(
    payload: FriendActionRequest,
    user: User = Depends(get_current_user),
    engine: RelationshipEngine = Depends(get_relationship_engine),
):
    return await _perform(engine.remove_friend, user, payload.account_id)
