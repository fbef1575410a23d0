from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base

PRIVATE_ROOM_MAX_MEMBERS = 2
GROUP_ROOM_MAX_MEMBERS = 500


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class RoomType(str, enum.Enum):
    PRIVATE = "private"
    GROUP = "group"
    CHANNEL = "channel"
    PUBLIC = "public"


class ChatRoom(Base):
    __tablename__ = "chat_rooms"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    room_type: Mapped[RoomType] = mapped_column(
        sa.Enum(
            RoomType,
            name="room_type",
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        index=True,
    )
    avatar_url: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)

    created_by_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True)

    is_private: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True, nullable=False)
    max_members: Mapped[int] = mapped_column(sa.Integer, default=GROUP_ROOM_MAX_MEMBERS, nullable=False)
    # "<low uuid>:<high uuid>" for private rooms, NULL otherwise
    private_pair_key: Mapped[str | None] = mapped_column(sa.String(73), nullable=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), default=_now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), default=_now_utc, onupdate=_now_utc, nullable=False)

    __table_args__ = (
        sa.CheckConstraint("max_members >= 2", name="ck_chat_rooms_max_members"),
        sa.UniqueConstraint("private_pair_key", name="uq_chat_rooms_private_pair"),
    )
