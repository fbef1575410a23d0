from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core import errors
from app.models.friendship import Friendship, FriendshipStatus
from app.models.user import User
from app.services.identity import resolve_user

logger = logging.getLogger(__name__)


class SendOutcome(str, enum.Enum):
    CREATED = "created"
    AUTO_ACCEPTED = "auto_accepted"


@dataclass(frozen=True)
class SendRequestResult:
    outcome: SendOutcome
    friendship: Friendship


def _pair(a: UUID, b: UUID) -> tuple[UUID, UUID]:
    return (a, b) if a < b else (b, a)


def _involves(user_id: UUID) -> sa.ColumnElement[bool]:
    return sa.or_(Friendship.requester_id == user_id, Friendship.recipient_id == user_id)


def _mutual() -> sa.ColumnElement[bool]:
    return sa.and_(Friendship.status == FriendshipStatus.ACCEPTED, Friendship.is_blocked.is_(False))


def _other_party(user_id: UUID, u) -> sa.ColumnElement[bool]:
    # friendship row can contain you on either side
    f = Friendship
    return ((f.requester_id == user_id) & (u.id == f.recipient_id)) | (
        (f.recipient_id == user_id) & (u.id == f.requester_id)
    )


async def _other_parties(db: AsyncSession, user_id: UUID, *conditions) -> list[tuple[Friendship, User]]:
    u = aliased(User)
    q = (
        sa.select(Friendship, u)
        .join(u, _other_party(user_id, u))
        .where(*conditions)
        .order_by(u.username.asc())
    )
    return [(row[0], row[1]) for row in (await db.execute(q)).all()]


async def find_between(db: AsyncSession, a: UUID, b: UUID) -> Friendship | None:
    low, high = _pair(a, b)
    q = sa.select(Friendship).where(
        Friendship.user_low_id == low,
        Friendship.user_high_id == high,
    )
    return (await db.execute(q)).scalar_one_or_none()


async def _require_mutual(db: AsyncSession, operation: str, user_id: UUID, friend_id: UUID) -> Friendship:
    friendship = await find_between(db, user_id, friend_id)
    if friendship is None or not friendship.is_mutual:
        raise errors.NotFriendsError(operation, user_id=user_id, friend_id=friend_id)
    return friendship


async def send_request(db: AsyncSession, requester_id: UUID, target_id: UUID) -> SendRequestResult:
    op = "send_request"
    if requester_id == target_id:
        raise errors.SelfReferenceError(op, user_id=requester_id)

    await resolve_user(db, requester_id, operation=op)
    await resolve_user(db, target_id, operation=op)

    existing = await find_between(db, requester_id, target_id)
    if existing is not None:
        if existing.is_blocked or existing.status == FriendshipStatus.BLOCKED:
            raise errors.PermissionError(op, requester_id=requester_id, target_id=target_id, reason="blocked")
        if existing.status == FriendshipStatus.ACCEPTED:
            raise errors.AlreadyFriendsError(op, requester_id=requester_id, target_id=target_id)
        if existing.status == FriendshipStatus.PENDING:
            if existing.requester_id == requester_id:
                raise errors.DuplicateRequestError(op, requester_id=requester_id, target_id=target_id)
            # the other side already asked: resolve both requests into one accepted edge
            friendship = await accept_request(db, requester_id, target_id)
            logger.info("Friend request %s auto-accepted (%s <-> %s)", friendship.id, target_id, requester_id)
            return SendRequestResult(SendOutcome.AUTO_ACCEPTED, friendship)

        # declined: the pair keeps its single row, re-opened in the new direction
        existing.requester_id = requester_id
        existing.recipient_id = target_id
        existing.status = FriendshipStatus.PENDING
        existing.accepted_at = None
        existing.alias = None
        existing.is_pinned = False
        existing.created_at = datetime.now(timezone.utc)
        await db.flush()
        logger.info("Friend request %s re-opened (%s -> %s)", existing.id, requester_id, target_id)
        return SendRequestResult(SendOutcome.CREATED, existing)

    low, high = _pair(requester_id, target_id)
    friendship = Friendship(
        requester_id=requester_id,
        recipient_id=target_id,
        user_low_id=low,
        user_high_id=high,
        status=FriendshipStatus.PENDING,
        is_blocked=False,
        is_pinned=False,
    )
    try:
        async with db.begin_nested():
            db.add(friendship)
            await db.flush()  # will raise on a concurrent insert for the same pair
    except IntegrityError as e:
        raise errors.DuplicateRequestError(op, requester_id=requester_id, target_id=target_id) from e

    logger.info("Friend request %s sent (%s -> %s)", friendship.id, requester_id, target_id)
    return SendRequestResult(SendOutcome.CREATED, friendship)


async def _pending_addressed_to(db: AsyncSession, op: str, recipient_id: UUID, requester_id: UUID) -> Friendship:
    friendship = await find_between(db, recipient_id, requester_id)
    if friendship is None:
        raise errors.NotFoundError(op, user_id=recipient_id, requester_id=requester_id)
    if friendship.status != FriendshipStatus.PENDING:
        raise errors.InvalidStateError(
            op, friendship_id=friendship.id, status=friendship.status.value
        )
    # only the recipient of the pending edge can answer it
    if friendship.recipient_id != recipient_id:
        raise errors.PermissionError(op, friendship_id=friendship.id, user_id=recipient_id)
    return friendship


async def accept_request(db: AsyncSession, accepter_id: UUID, requester_id: UUID) -> Friendship:
    friendship = await _pending_addressed_to(db, "accept_request", accepter_id, requester_id)
    friendship.accept()
    await db.flush()
    logger.info("Friend request %s accepted by %s", friendship.id, accepter_id)
    return friendship


async def decline_request(db: AsyncSession, decliner_id: UUID, requester_id: UUID) -> Friendship:
    friendship = await _pending_addressed_to(db, "decline_request", decliner_id, requester_id)
    friendship.decline()
    await db.flush()
    logger.info("Friend request %s declined by %s", friendship.id, decliner_id)
    return friendship


async def remove_friend(db: AsyncSession, user_id: UUID, friend_id: UUID) -> None:
    friendship = await _require_mutual(db, "remove_friend", user_id, friend_id)
    await db.delete(friendship)
    await db.flush()
    logger.info("Friendship %s removed by %s", friendship.id, user_id)


async def block_user(db: AsyncSession, user_id: UUID, target_id: UUID) -> Friendship:
    op = "block_user"
    if user_id == target_id:
        raise errors.SelfReferenceError(op, user_id=user_id)

    friendship = await find_between(db, user_id, target_id)
    if friendship is None:
        await resolve_user(db, user_id, operation=op)
        await resolve_user(db, target_id, operation=op)
        low, high = _pair(user_id, target_id)
        friendship = Friendship(
            requester_id=user_id,
            recipient_id=target_id,
            user_low_id=low,
            user_high_id=high,
            is_pinned=False,
        )
        db.add(friendship)

    friendship.block()
    await db.flush()
    logger.info("User %s blocked %s (friendship %s)", user_id, target_id, friendship.id)
    return friendship


async def unblock_user(db: AsyncSession, user_id: UUID, target_id: UUID) -> Friendship:
    op = "unblock_user"
    friendship = await find_between(db, user_id, target_id)
    if friendship is None:
        raise errors.NotFoundError(op, user_id=user_id, target_id=target_id)
    if not friendship.is_blocked:
        raise errors.NotBlockedError(op, user_id=user_id, target_id=target_id)

    # unblocking does not restore an earlier acceptance
    friendship.is_blocked = False
    friendship.status = FriendshipStatus.DECLINED
    await db.flush()
    logger.info("User %s unblocked %s (friendship %s)", user_id, target_id, friendship.id)
    return friendship


async def set_alias(db: AsyncSession, user_id: UUID, friend_id: UUID, alias: str | None) -> Friendship:
    friendship = await _require_mutual(db, "set_alias", user_id, friend_id)
    cleaned = (alias or "").strip()
    friendship.alias = cleaned[:100] or None
    await db.flush()
    return friendship


async def toggle_pin(db: AsyncSession, user_id: UUID, friend_id: UUID) -> bool:
    friendship = await _require_mutual(db, "toggle_pin", user_id, friend_id)
    friendship.is_pinned = not friendship.is_pinned
    await db.flush()
    return friendship.is_pinned


async def list_friends(db: AsyncSession, user_id: UUID) -> list[User]:
    rows = await _other_parties(db, user_id, _mutual())
    return [u for _, u in rows]


async def list_friend_entries(db: AsyncSession, user_id: UUID) -> list[tuple[Friendship, User]]:
    """Friends together with the relationship row (alias, pinned flag)."""
    return await _other_parties(db, user_id, _mutual())


async def list_pinned(db: AsyncSession, user_id: UUID) -> list[User]:
    rows = await _other_parties(db, user_id, _mutual(), Friendship.is_pinned.is_(True))
    return [u for _, u in rows]


async def list_blocked(db: AsyncSession, user_id: UUID) -> list[User]:
    rows = await _other_parties(db, user_id, Friendship.is_blocked.is_(True))
    return [u for _, u in rows]


async def search_friends(db: AsyncSession, user_id: UUID, keyword: str) -> list[User]:
    kw = (keyword or "").strip().lower()
    if not kw:
        return await list_friends(db, user_id)

    u = aliased(User)
    q = (
        sa.select(u)
        .join(Friendship, _other_party(user_id, u))
        .where(
            _mutual(),
            sa.or_(
                sa.func.lower(u.display_name).contains(kw, autoescape=True),
                sa.func.lower(u.username).contains(kw, autoescape=True),
                sa.func.lower(sa.func.coalesce(Friendship.alias, "")).contains(kw, autoescape=True),
            ),
        )
        .order_by(u.username.asc())
    )
    return list((await db.execute(q)).scalars().all())


async def list_pending_incoming(db: AsyncSession, user_id: UUID) -> list[Friendship]:
    q = (
        sa.select(Friendship)
        .where(Friendship.recipient_id == user_id, Friendship.status == FriendshipStatus.PENDING)
        .order_by(Friendship.created_at.desc())
    )
    return list((await db.execute(q)).scalars().all())


async def list_pending_outgoing(db: AsyncSession, user_id: UUID) -> list[Friendship]:
    q = (
        sa.select(Friendship)
        .where(Friendship.requester_id == user_id, Friendship.status == FriendshipStatus.PENDING)
        .order_by(Friendship.created_at.desc())
    )
    return list((await db.execute(q)).scalars().all())


async def count_friends(db: AsyncSession, user_id: UUID) -> int:
    q = sa.select(sa.func.count(Friendship.id)).where(_involves(user_id), _mutual())
    return int((await db.execute(q)).scalar_one())


async def are_friends(db: AsyncSession, a: UUID, b: UUID) -> bool:
    friendship = await find_between(db, a, b)
    return friendship is not None and friendship.is_mutual


async def friend_stats(db: AsyncSession, user_id: UUID) -> dict:
    incoming = await list_pending_incoming(db, user_id)
    outgoing = await list_pending_outgoing(db, user_id)
    return {
        "friend_count": await count_friends(db, user_id),
        "pending_received": len(incoming),
        "pending_sent": len(outgoing),
    }
