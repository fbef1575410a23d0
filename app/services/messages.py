from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import errors
from app.models.chat_room_member import ChatRoomMember
from app.models.message import Message, MessageType
from app.services.chat_rooms import is_admin, require_member

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 200
RECALL_WINDOW = timedelta(minutes=2)

RECALLED_CONTENT = "[message recalled]"
DELETED_CONTENT = "[message deleted]"


async def send_message(
    db: AsyncSession,
    room_id: UUID,
    sender_id: UUID,
    content: str,
    message_type: MessageType = MessageType.TEXT,
    reply_to_id: UUID | None = None,
) -> Message:
    op = "send_message"
    membership = await require_member(db, op, room_id, sender_id)
    if membership.is_muted:
        raise errors.MutedError(op, room_id=room_id, user_id=sender_id)

    if reply_to_id is not None:
        target = (
            await db.execute(
                sa.select(Message.id).where(
                    Message.id == reply_to_id,
                    Message.chat_room_id == room_id,
                    Message.is_deleted.is_(False),
                )
            )
        ).scalar_one_or_none()
        if target is None:
            raise errors.NotFoundError(op, room_id=room_id, message_id=reply_to_id)

    message = Message(
        chat_room_id=room_id,
        sender_id=sender_id,
        content=content,
        message_type=message_type,
        reply_to_id=reply_to_id,
        is_deleted=False,
    )
    db.add(message)

    # everyone except the sender gets one more unread message
    await db.execute(
        sa.update(ChatRoomMember)
        .where(ChatRoomMember.chat_room_id == room_id, ChatRoomMember.user_id != sender_id)
        .values(unread_count=ChatRoomMember.unread_count + 1)
    )
    await db.flush()

    logger.info("Message %s sent by %s in chat room %s", message.id, sender_id, room_id)
    return message


async def list_messages(db: AsyncSession, room_id: UUID, user_id: UUID, limit: int = 50) -> list[Message]:
    await require_member(db, "list_messages", room_id, user_id)
    limit = max(1, min(limit, MAX_LIST_LIMIT))
    q = (
        sa.select(Message)
        .where(Message.chat_room_id == room_id, Message.is_deleted.is_(False))
        .order_by(Message.created_at.desc())
        .limit(limit)
    )
    return list((await db.execute(q)).scalars().all())


async def mark_all_read(db: AsyncSession, room_id: UUID, user_id: UUID) -> ChatRoomMember:
    membership = await require_member(db, "mark_all_read", room_id, user_id)

    latest = (
        await db.execute(
            sa.select(Message.id)
            .where(Message.chat_room_id == room_id, Message.is_deleted.is_(False))
            .order_by(Message.created_at.desc())
            .limit(1)
        )
    ).scalar_one_or_none()

    if latest is not None:
        membership.last_read_message_id = latest
    membership.unread_count = 0
    await db.flush()
    return membership


async def unread_count(db: AsyncSession, room_id: UUID, user_id: UUID) -> int:
    await require_member(db, "unread_count", room_id, user_id)
    q = sa.select(ChatRoomMember.unread_count).where(
        ChatRoomMember.chat_room_id == room_id,
        ChatRoomMember.user_id == user_id,
    )
    return int((await db.execute(q)).scalar_one())


async def total_unread_count(db: AsyncSession, user_id: UUID) -> int:
    q = sa.select(sa.func.coalesce(sa.func.sum(ChatRoomMember.unread_count), 0)).where(
        ChatRoomMember.user_id == user_id
    )
    return int((await db.execute(q)).scalar_one())


async def _get_message(db: AsyncSession, op: str, room_id: UUID, message_id: UUID) -> Message:
    q = sa.select(Message).where(
        Message.id == message_id,
        Message.chat_room_id == room_id,
        Message.is_deleted.is_(False),
    )
    message = (await db.execute(q)).scalar_one_or_none()
    if message is None:
        raise errors.NotFoundError(op, room_id=room_id, message_id=message_id)
    return message


async def recall_message(db: AsyncSession, room_id: UUID, message_id: UUID, user_id: UUID) -> Message:
    """Let the sender take back a message within RECALL_WINDOW of sending it."""
    op = "recall_message"
    message = await _get_message(db, op, room_id, message_id)
    if message.sender_id != user_id:
        raise errors.PermissionError(op, message_id=message_id, user_id=user_id)

    sent_at = message.created_at
    if sent_at.tzinfo is None:
        # sqlite hands back naive values
        sent_at = sent_at.replace(tzinfo=timezone.utc)
    if datetime.now(timezone.utc) - sent_at > RECALL_WINDOW:
        raise errors.InvalidStateError(op, message_id=message_id, reason="recall_window_expired")

    message.is_deleted = True
    message.content = RECALLED_CONTENT
    await db.flush()
    logger.info("User %s recalled message %s in chat room %s", user_id, message_id, room_id)
    return message


async def delete_message(db: AsyncSession, room_id: UUID, message_id: UUID, operator_id: UUID) -> Message:
    op = "delete_message"
    message = await _get_message(db, op, room_id, message_id)
    if message.sender_id != operator_id and not await is_admin(db, room_id, operator_id):
        raise errors.PermissionError(op, message_id=message_id, user_id=operator_id)

    message.is_deleted = True
    message.content = DELETED_CONTENT
    await db.flush()
    logger.info("User %s deleted message %s in chat room %s", operator_id, message_id, room_id)
    return message
