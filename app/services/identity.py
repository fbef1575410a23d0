from __future__ import annotations

from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import errors
from app.models.user import User


async def resolve_user(db: AsyncSession, user_id: UUID, *, operation: str = "resolve_user") -> User:
    """Load an active user or raise NotFoundError."""
    user = (await db.execute(sa.select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None or not user.is_active:
        raise errors.NotFoundError(operation, user_id=user_id)
    return user


async def resolve_users(db: AsyncSession, user_ids: list[UUID], *, operation: str = "resolve_users") -> list[User]:
    if not user_ids:
        return []

    rows = (await db.execute(sa.select(User).where(User.id.in_(user_ids)))).scalars().all()
    found = {u.id: u for u in rows if u.is_active}

    missing = [uid for uid in user_ids if uid not in found]
    if missing:
        raise errors.NotFoundError(operation, user_id=missing[0])
    return [found[uid] for uid in user_ids]
