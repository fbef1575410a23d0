from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_caller_id, get_db
from app.api.http_errors import chat_error
from app.core.errors import ChatError
from app.models.message import Message
from app.schemas.messages import MessageResponse, SendMessageRequest, UnreadCountResponse
from app.services import messages as messages_service

router = APIRouter(prefix="/chat-rooms/{room_id}/messages", tags=["messages"])


def _message_out(m: Message) -> MessageResponse:
    return MessageResponse(
        id=m.id,
        chat_room_id=m.chat_room_id,
        sender_id=m.sender_id,
        content=m.content,
        message_type=m.message_type.value,
        reply_to_id=m.reply_to_id,
        is_deleted=m.is_deleted,
        created_at=m.created_at,
    )


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message_route(
    room_id: UUID,
    payload: SendMessageRequest,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        message = await messages_service.send_message(
            db,
            room_id,
            caller_id,
            payload.content,
            message_type=payload.message_type,
            reply_to_id=payload.reply_to_id,
        )
        await db.commit()
        return _message_out(message)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e, code_statuses={"not_member": 403}) from e


@router.get("", response_model=list[MessageResponse])
async def list_messages_route(
    room_id: UUID,
    limit: int = Query(default=50, ge=1, le=messages_service.MAX_LIST_LIMIT),
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        rows = await messages_service.list_messages(db, room_id, caller_id, limit=limit)
    except ChatError as e:
        raise chat_error(e, code_statuses={"not_member": 403}) from e
    return [_message_out(m) for m in rows]


@router.post("/read-all", response_model=UnreadCountResponse)
async def mark_all_read_route(
    room_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        membership = await messages_service.mark_all_read(db, room_id, caller_id)
        await db.commit()
        return UnreadCountResponse(unread_count=membership.unread_count)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e, code_statuses={"not_member": 403}) from e


@router.get("/unread", response_model=UnreadCountResponse)
async def unread_count_route(
    room_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        count = await messages_service.unread_count(db, room_id, caller_id)
    except ChatError as e:
        raise chat_error(e, code_statuses={"not_member": 403}) from e
    return UnreadCountResponse(unread_count=count)


@router.post("/{message_id}/recall", response_model=MessageResponse)
async def recall_message_route(
    room_id: UUID,
    message_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        message = await messages_service.recall_message(db, room_id, message_id, caller_id)
        await db.commit()
        return _message_out(message)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message_route(
    room_id: UUID,
    message_id: UUID,
    db: AsyncSession = Depends(get_db),
    caller_id: UUID = Depends(get_caller_id),
):
    try:
        message = await messages_service.delete_message(db, room_id, message_id, caller_id)
        await db.commit()
        return _message_out(message)
    except ChatError as e:
        await db.rollback()
        raise chat_error(e) from e
