from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_caller_id, get_db
from app.api.http_errors import chat_error
from app.core.errors import ChatError
from app.models.chat_room import ChatRoom
from app.models.chat_room_member import ChatRoomMember
from app.schemas.chat_rooms import (
    ChatRoomMemberResponse,
    ChatRoomResponse,
    CreateGroupChatRequest,
    MembershipStatusResponse,
    OkResponse,
    UpdateChatRoomRequest,
)
from app.services import chat_rooms as rooms_service

router = APIRouter(prefix="/chat-rooms", tags=["chat-rooms"])


async def _room_out(db: AsyncSession, room: ChatRoom) -> ChatRoomResponse:
    return ChatRoomResponse(
        id=room.id,
        name=room.name,
        description=room.description,
        room_type=room.room_type.value,
        avatar_url=room.avatar_url,
        created_by_id=room.created_by_id,
        is_private=room.is_private,
        max_members=room.max_members,
        member_count=await rooms_service.count_members(db, room.id),
        created_at=room.created_at,
    )


def _status_out(m: ChatRoomMember) -> MembershipStatusResponse:
    return MembershipStatusResponse(user_id=m.user_id, role=m.role.value, is_admin=m.is_admin, is_muted=m.is_muted)


@router.post("/private/{friend_id}", response_model=ChatRoomResponse)
async def create_private_chat_route(
    friend_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        room = await rooms_service.create_private_chat(db, caller_id, friend_id)
        await db.commit()
        return await _room_out(db, room)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.post("/group", response_model=ChatRoomResponse, status_code=201)
async def create_group_chat_route(
    payload: CreateGroupChatRequest,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        room = await rooms_service.create_group_chat(
            db, caller_id, payload.name, payload.description, payload.member_ids
        )
        await db.commit()
        return await _room_out(db, room)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.get("", response_model=list[ChatRoomResponse])
async def list_chat_rooms_route(
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    rooms = await rooms_service.list_user_chat_rooms(db, caller_id)
    return [await _room_out(db, r) for r in rooms]


@router.get("/search", response_model=list[ChatRoomResponse])
async def search_chat_rooms_route(
    keyword: str = Query(default="", max_length=100),
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    rooms = await rooms_service.search_public_rooms(db, keyword)
    return [await _room_out(db, r) for r in rooms]


@router.get("/{room_id}", response_model=ChatRoomResponse)
async def chat_room_detail_route(
    room_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        room = await rooms_service.get_chat_room_details(db, room_id, caller_id)
        return await _room_out(db, room)
    except ChatError as e:
        raise chat_error(e) from e


@router.get("/{room_id}/members", response_model=list[ChatRoomMemberResponse])
async def chat_room_members_route(
    room_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        members = await rooms_service.list_members(db, room_id, caller_id)
    except ChatError as e:
        raise chat_error(e) from e
    return [
        ChatRoomMemberResponse(
            user_id=m.user_id,
            username=m.user.username if m.user else None,
            display_name=m.user.display_name if m.user else None,
            role=m.role.value,
            is_admin=m.is_admin,
            is_muted=m.is_muted,
            nickname=m.nickname,
            unread_count=m.unread_count,
            joined_at=m.joined_at,
        )
        for m in members
    ]


@router.post("/{room_id}/join", response_model=MembershipStatusResponse)
async def join_chat_room_route(
    room_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        membership = await rooms_service.join_chat_room(db, room_id, caller_id)
        await db.commit()
        return _status_out(membership)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.post("/{room_id}/leave", response_model=OkResponse)
async def leave_chat_room_route(
    room_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        await rooms_service.leave_chat_room(db, room_id, caller_id)
        await db.commit()
        return OkResponse(ok=True)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.put("/{room_id}", response_model=ChatRoomResponse)
async def update_chat_room_route(
    room_id: UUID,
    payload: UpdateChatRoomRequest,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        room = await rooms_service.update_chat_room(
            db,
            room_id,
            caller_id,
            name=payload.name,
            description=payload.description,
            avatar_url=payload.avatar_url,
        )
        await db.commit()
        return await _room_out(db, room)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.post("/{room_id}/members/{user_id}/toggle-admin", response_model=MembershipStatusResponse)
async def toggle_admin_route(
    room_id: UUID,
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        membership = await rooms_service.toggle_admin(db, room_id, caller_id, user_id)
        await db.commit()
        return _status_out(membership)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.post("/{room_id}/members/{user_id}/kick", response_model=OkResponse)
async def kick_member_route(
    room_id: UUID,
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        await rooms_service.kick_member(db, room_id, caller_id, user_id)
        await db.commit()
        return OkResponse(ok=True)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.post("/{room_id}/members/{user_id}/toggle-mute", response_model=MembershipStatusResponse)
async def toggle_mute_route(
    room_id: UUID,
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        membership = await rooms_service.toggle_mute_status(db, room_id, caller_id, user_id)
        await db.commit()
        return _status_out(membership)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.delete("/{room_id}", response_model=OkResponse)
async def delete_chat_room_route(
    room_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        await rooms_service.delete_chat_room(db, room_id, caller_id)
        await db.commit()
        return OkResponse(ok=True)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e
