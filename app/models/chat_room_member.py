from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class MemberRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MODERATOR = "moderator"
    MEMBER = "member"


class ChatRoomMember(Base):
    __tablename__ = "chat_room_members"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    chat_room_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    role: Mapped[MemberRole] = mapped_column(
        sa.Enum(
            MemberRole,
            name="member_role",
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=MemberRole.MEMBER,
        nullable=False,
    )
    is_admin: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    is_muted: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    nickname: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)

    last_read_message_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid(as_uuid=True), nullable=True)
    unread_count: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)

    joined_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), default=_now_utc, nullable=False)

    __table_args__ = (
        sa.UniqueConstraint("chat_room_id", "user_id", name="uq_chat_room_member_pair"),
    )

    user = relationship("User", lazy="joined")
