from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_caller_id, get_db
from app.api.http_errors import chat_error
from app.core.errors import ChatError
from app.models.friendship import Friendship
from app.models.user import User
from app.schemas.friends import (
    CheckFriendshipResponse,
    FriendListItem,
    FriendRequestItem,
    FriendshipResponse,
    FriendStatsResponse,
    FriendUser,
    OkResponse,
    SendFriendRequestResponse,
    SetAliasRequest,
    TogglePinResponse,
)
from app.services import friends as friends_service

router = APIRouter(prefix="/friends", tags=["friends"])


def _friendship_out(f: Friendship) -> FriendshipResponse:
    return FriendshipResponse(
        id=f.id,
        requester_id=f.requester_id,
        recipient_id=f.recipient_id,
        status=f.status.value,
        is_blocked=f.is_blocked,
        is_pinned=f.is_pinned,
        alias=f.alias,
        created_at=f.created_at,
        accepted_at=f.accepted_at,
    )


def _user_out(u: User) -> FriendUser:
    return FriendUser(id=u.id, username=u.username, display_name=u.display_name, avatar_url=u.avatar_url)


@router.post("/request/{friend_id}", response_model=SendFriendRequestResponse, status_code=201)
async def send_request_route(
    friend_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        result = await friends_service.send_request(db, caller_id, friend_id)
        await db.commit()
        return SendFriendRequestResponse(outcome=result.outcome.value, friendship=_friendship_out(result.friendship))
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.post("/accept/{friend_id}", response_model=FriendshipResponse)
async def accept_request_route(
    friend_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        friendship = await friends_service.accept_request(db, caller_id, friend_id)
        await db.commit()
        return _friendship_out(friendship)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.post("/decline/{friend_id}", response_model=FriendshipResponse)
async def decline_request_route(
    friend_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        friendship = await friends_service.decline_request(db, caller_id, friend_id)
        await db.commit()
        return _friendship_out(friendship)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.delete("/{friend_id}", response_model=OkResponse)
async def remove_friend_route(
    friend_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        await friends_service.remove_friend(db, caller_id, friend_id)
        await db.commit()
        return OkResponse(ok=True)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.post("/block/{user_id}", response_model=FriendshipResponse)
async def block_user_route(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        friendship = await friends_service.block_user(db, caller_id, user_id)
        await db.commit()
        return _friendship_out(friendship)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.post("/unblock/{user_id}", response_model=FriendshipResponse)
async def unblock_user_route(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        friendship = await friends_service.unblock_user(db, caller_id, user_id)
        await db.commit()
        return _friendship_out(friendship)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.put("/{friend_id}/alias", response_model=FriendshipResponse)
async def set_alias_route(
    friend_id: UUID,
    payload: SetAliasRequest,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        friendship = await friends_service.set_alias(db, caller_id, friend_id, payload.alias)
        await db.commit()
        return _friendship_out(friendship)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.post("/{friend_id}/pin", response_model=TogglePinResponse)
async def toggle_pin_route(
    friend_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        pinned = await friends_service.toggle_pin(db, caller_id, friend_id)
        await db.commit()
        return TogglePinResponse(ok=True, is_pinned=pinned)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.get("", response_model=list[FriendListItem])
async def list_friends_route(
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    rows = await friends_service.list_friend_entries(db, caller_id)
    return [
        FriendListItem(
            **_user_out(u).model_dump(),
            alias=f.alias,
            is_pinned=f.is_pinned,
        )
        for f, u in rows
    ]


@router.get("/requests/received", response_model=list[FriendRequestItem])
async def received_requests_route(
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    rows = await friends_service.list_pending_incoming(db, caller_id)
    return [
        FriendRequestItem(id=f.id, user=_user_out(f.requester), status=f.status.value, created_at=f.created_at)
        for f in rows
    ]


@router.get("/requests/sent", response_model=list[FriendRequestItem])
async def sent_requests_route(
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    rows = await friends_service.list_pending_outgoing(db, caller_id)
    return [
        FriendRequestItem(id=f.id, user=_user_out(f.recipient), status=f.status.value, created_at=f.created_at)
        for f in rows
    ]


@router.get("/search", response_model=list[FriendUser])
async def search_friends_route(
    keyword: str = Query(default="", max_length=100),
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    return [_user_out(u) for u in await friends_service.search_friends(db, caller_id, keyword)]


@router.get("/pinned", response_model=list[FriendUser])
async def pinned_friends_route(
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    return [_user_out(u) for u in await friends_service.list_pinned(db, caller_id)]


@router.get("/blocked", response_model=list[FriendUser])
async def blocked_users_route(
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    return [_user_out(u) for u in await friends_service.list_blocked(db, caller_id)]


@router.get("/check/{user_id}", response_model=CheckFriendshipResponse)
async def check_friendship_route(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    return CheckFriendshipResponse(are_friends=await friends_service.are_friends(db, caller_id, user_id))


@router.get("/stats", response_model=FriendStatsResponse)
async def friend_stats_route(
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    return FriendStatsResponse(**await friends_service.friend_stats(db, caller_id))
