from __future__ import annotations

import logging
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import errors
from app.core.config import settings
from app.models.chat_room import PRIVATE_ROOM_MAX_MEMBERS, ChatRoom, RoomType
from app.models.chat_room_member import ChatRoomMember, MemberRole
from app.models.message import Message
from app.services.identity import resolve_user, resolve_users

logger = logging.getLogger(__name__)


async def _get_room(db: AsyncSession, op: str, room_id: UUID, *, for_update: bool = False) -> ChatRoom:
    q = sa.select(ChatRoom).where(ChatRoom.id == room_id)
    if for_update:
        q = q.with_for_update()
    room = (await db.execute(q)).scalar_one_or_none()
    if room is None:
        raise errors.NotFoundError(op, room_id=room_id)
    return room


async def get_membership(db: AsyncSession, room_id: UUID, user_id: UUID) -> ChatRoomMember | None:
    q = sa.select(ChatRoomMember).where(
        ChatRoomMember.chat_room_id == room_id,
        ChatRoomMember.user_id == user_id,
    )
    return (await db.execute(q)).scalar_one_or_none()


async def is_member(db: AsyncSession, room_id: UUID, user_id: UUID) -> bool:
    return await get_membership(db, room_id, user_id) is not None


async def is_admin(db: AsyncSession, room_id: UUID, user_id: UUID) -> bool:
    membership = await get_membership(db, room_id, user_id)
    return membership is not None and membership.is_admin


async def is_muted(db: AsyncSession, room_id: UUID, user_id: UUID) -> bool:
    membership = await get_membership(db, room_id, user_id)
    return membership is not None and membership.is_muted


async def count_members(db: AsyncSession, room_id: UUID) -> int:
    q = sa.select(sa.func.count(ChatRoomMember.id)).where(ChatRoomMember.chat_room_id == room_id)
    return int((await db.execute(q)).scalar_one())


async def _require_admin(db: AsyncSession, op: str, room_id: UUID, actor_id: UUID) -> None:
    if not await is_admin(db, room_id, actor_id):
        raise errors.PermissionError(op, room_id=room_id, user_id=actor_id)


async def require_member(db: AsyncSession, op: str, room_id: UUID, user_id: UUID) -> ChatRoomMember:
    membership = await get_membership(db, room_id, user_id)
    if membership is None:
        raise errors.NotMemberError(op, room_id=room_id, user_id=user_id)
    return membership


def _add_member(db: AsyncSession, room_id: UUID, user_id: UUID, role: MemberRole) -> ChatRoomMember:
    membership = ChatRoomMember(
        chat_room_id=room_id,
        user_id=user_id,
        role=role,
        is_admin=role in (MemberRole.OWNER, MemberRole.ADMIN),
        is_muted=False,
        unread_count=0,
    )
    db.add(membership)
    return membership


def _private_pair_key(a: UUID, b: UUID) -> str:
    low, high = (a, b) if a < b else (b, a)
    return f"{low}:{high}"


async def _private_room_by_key(db: AsyncSession, key: str) -> ChatRoom | None:
    q = sa.select(ChatRoom).where(ChatRoom.private_pair_key == key)
    return (await db.execute(q)).scalar_one_or_none()


async def find_private_chat(db: AsyncSession, a: UUID, b: UUID) -> ChatRoom | None:
    return await _private_room_by_key(db, _private_pair_key(a, b))


async def create_private_chat(db: AsyncSession, user_id: UUID, friend_id: UUID) -> ChatRoom:
    op = "create_private_chat"
    if user_id == friend_id:
        raise errors.SelfReferenceError(op, user_id=user_id)

    existing = await find_private_chat(db, user_id, friend_id)
    if existing is not None:
        return existing

    user = await resolve_user(db, user_id, operation=op)
    friend = await resolve_user(db, friend_id, operation=op)

    key = _private_pair_key(user_id, friend_id)
    room = ChatRoom(
        name=f"{user.display_name} & {friend.display_name}"[:100],
        room_type=RoomType.PRIVATE,
        created_by_id=user_id,
        is_private=True,
        is_active=True,
        max_members=PRIVATE_ROOM_MAX_MEMBERS,
        private_pair_key=key,
    )
    try:
        async with db.begin_nested():
            db.add(room)
            await db.flush()  # raises on a concurrent create for the same pair

            _add_member(db, room.id, user_id, MemberRole.MEMBER)
            _add_member(db, room.id, friend_id, MemberRole.MEMBER)
            await db.flush()
    except IntegrityError:
        winner = await _private_room_by_key(db, key)
        if winner is None:
            raise
        logger.info("Private chat %s already created for %s & %s", winner.id, user_id, friend_id)
        return winner

    logger.info("Private chat %s created (%s & %s)", room.id, user_id, friend_id)
    return room


async def create_group_chat(
    db: AsyncSession,
    creator_id: UUID,
    name: str,
    description: str | None,
    member_ids: list[UUID],
) -> ChatRoom:
    op = "create_group_chat"
    await resolve_user(db, creator_id, operation=op)

    # de-dupe and remove creator if included
    members: list[UUID] = []
    seen: set[UUID] = set()
    for uid in member_ids or []:
        if uid == creator_id or uid in seen:
            continue
        seen.add(uid)
        members.append(uid)

    max_members = settings.group_max_members
    if 1 + len(members) > max_members:
        raise errors.RoomFullError(op, user_id=creator_id, requested=1 + len(members), max_members=max_members)

    await resolve_users(db, members, operation=op)

    room = ChatRoom(
        name=name.strip(),
        description=description,
        room_type=RoomType.GROUP,
        created_by_id=creator_id,
        is_private=False,
        is_active=True,
        max_members=max_members,
    )
    db.add(room)
    await db.flush()

    _add_member(db, room.id, creator_id, MemberRole.ADMIN)
    for uid in members:
        _add_member(db, room.id, uid, MemberRole.MEMBER)
    await db.flush()

    logger.info("Group chat %s created by %s with %d members", room.id, creator_id, 1 + len(members))
    return room


async def join_chat_room(db: AsyncSession, room_id: UUID, user_id: UUID) -> ChatRoomMember:
    op = "join_chat_room"
    # Lock the room row so the capacity check and the insert are atomic
    room = await _get_room(db, op, room_id, for_update=True)
    await resolve_user(db, user_id, operation=op)

    if await is_member(db, room_id, user_id):
        raise errors.AlreadyMemberError(op, room_id=room_id, user_id=user_id)
    if room.is_private:
        raise errors.PrivateRoomError(op, room_id=room_id, user_id=user_id)

    current = await count_members(db, room_id)
    if current >= room.max_members:
        raise errors.RoomFullError(op, room_id=room_id, user_id=user_id, max_members=room.max_members)

    membership = _add_member(db, room_id, user_id, MemberRole.MEMBER)
    await db.flush()
    logger.info("User %s joined chat room %s", user_id, room_id)
    return membership


async def leave_chat_room(db: AsyncSession, room_id: UUID, user_id: UUID) -> None:
    op = "leave_chat_room"
    room = await _get_room(db, op, room_id)
    membership = await require_member(db, op, room_id, user_id)
    if room.room_type == RoomType.PRIVATE:
        raise errors.CannotLeavePrivateError(op, room_id=room_id, user_id=user_id)

    await db.delete(membership)
    await db.flush()
    logger.info("User %s left chat room %s", user_id, room_id)


async def update_chat_room(
    db: AsyncSession,
    room_id: UUID,
    actor_id: UUID,
    *,
    name: str | None = None,
    description: str | None = None,
    avatar_url: str | None = None,
) -> ChatRoom:
    op = "update_chat_room"
    room = await _get_room(db, op, room_id)
    await _require_admin(db, op, room_id, actor_id)

    if name is not None and name.strip():
        room.name = name.strip()[:100]
    if description is not None:
        room.description = description
    if avatar_url is not None:
        room.avatar_url = avatar_url

    await db.flush()
    logger.info("Chat room %s updated by %s", room_id, actor_id)
    return room


async def toggle_admin(db: AsyncSession, room_id: UUID, actor_id: UUID, target_user_id: UUID) -> ChatRoomMember:
    op = "toggle_admin"
    room = await _get_room(db, op, room_id)
    await _require_admin(db, op, room_id, actor_id)
    membership = await require_member(db, op, room_id, target_user_id)

    # the creator's role is fixed
    if target_user_id == room.created_by_id or membership.role == MemberRole.OWNER:
        raise errors.PermissionError(op, room_id=room_id, user_id=actor_id, target_user_id=target_user_id, reason="owner")

    membership.is_admin = not membership.is_admin
    membership.role = MemberRole.ADMIN if membership.is_admin else MemberRole.MEMBER
    await db.flush()
    logger.info(
        "User %s set admin=%s for %s in chat room %s", actor_id, membership.is_admin, target_user_id, room_id
    )
    return membership


async def kick_member(db: AsyncSession, room_id: UUID, actor_id: UUID, target_user_id: UUID) -> None:
    op = "kick_member"
    room = await _get_room(db, op, room_id)
    await _require_admin(db, op, room_id, actor_id)
    if target_user_id == room.created_by_id:
        raise errors.CannotKickOwnerError(op, room_id=room_id, user_id=actor_id, target_user_id=target_user_id)

    membership = await require_member(db, op, room_id, target_user_id)
    await db.delete(membership)
    await db.flush()
    logger.info("User %s kicked %s from chat room %s", actor_id, target_user_id, room_id)


async def toggle_mute_status(db: AsyncSession, room_id: UUID, actor_id: UUID, target_user_id: UUID) -> ChatRoomMember:
    op = "toggle_mute_status"
    await _get_room(db, op, room_id)
    await _require_admin(db, op, room_id, actor_id)
    membership = await require_member(db, op, room_id, target_user_id)

    membership.is_muted = not membership.is_muted
    await db.flush()
    logger.info(
        "User %s set muted=%s for %s in chat room %s", actor_id, membership.is_muted, target_user_id, room_id
    )
    return membership


async def delete_chat_room(db: AsyncSession, room_id: UUID, user_id: UUID) -> None:
    op = "delete_chat_room"
    room = await _get_room(db, op, room_id)
    if room.created_by_id != user_id:
        raise errors.PermissionError(op, room_id=room_id, user_id=user_id)
    if room.room_type == RoomType.PRIVATE:
        raise errors.CannotDeletePrivateError(op, room_id=room_id, user_id=user_id)

    await db.execute(sa.delete(Message).where(Message.chat_room_id == room_id))
    await db.execute(sa.delete(ChatRoomMember).where(ChatRoomMember.chat_room_id == room_id))
    await db.delete(room)
    await db.flush()
    logger.info("Chat room %s deleted by %s", room_id, user_id)


async def get_chat_room_details(db: AsyncSession, room_id: UUID, user_id: UUID) -> ChatRoom:
    op = "get_chat_room_details"
    room = await _get_room(db, op, room_id)
    if room.is_private and not await is_member(db, room_id, user_id):
        raise errors.PermissionError(op, room_id=room_id, user_id=user_id)
    return room


async def list_members(db: AsyncSession, room_id: UUID, user_id: UUID) -> list[ChatRoomMember]:
    op = "list_members"
    room = await _get_room(db, op, room_id)
    if room.is_private and not await is_member(db, room_id, user_id):
        raise errors.PermissionError(op, room_id=room_id, user_id=user_id)

    q = (
        sa.select(ChatRoomMember)
        .where(ChatRoomMember.chat_room_id == room_id)
        .order_by(ChatRoomMember.joined_at.asc())
    )
    return list((await db.execute(q)).scalars().all())


async def list_user_chat_rooms(db: AsyncSession, user_id: UUID) -> list[ChatRoom]:
    q = (
        sa.select(ChatRoom)
        .join(ChatRoomMember, ChatRoomMember.chat_room_id == ChatRoom.id)
        .where(ChatRoomMember.user_id == user_id, ChatRoom.is_active.is_(True))
        .order_by(ChatRoom.updated_at.desc())
    )
    return list((await db.execute(q)).scalars().all())


async def search_public_rooms(db: AsyncSession, keyword: str) -> list[ChatRoom]:
    kw = (keyword or "").strip().lower()
    q = sa.select(ChatRoom).where(ChatRoom.is_private.is_(False), ChatRoom.is_active.is_(True))
    if kw:
        q = q.where(
            sa.or_(
                sa.func.lower(ChatRoom.name).contains(kw, autoescape=True),
                sa.func.lower(sa.func.coalesce(ChatRoom.description, "")).contains(kw, autoescape=True),
            )
        )
    q = q.order_by(ChatRoom.updated_at.desc())
    return list((await db.execute(q)).scalars().all())
