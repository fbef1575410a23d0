from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    AUDIO = "audio"
    VIDEO = "video"
    SYSTEM = "system"


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    chat_room_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True)

    content: Mapped[str] = mapped_column(sa.Text, nullable=False)
    message_type: Mapped[MessageType] = mapped_column(
        sa.Enum(
            MessageType,
            name="message_type",
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=MessageType.TEXT,
        nullable=False,
    )
    reply_to_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("messages.id", ondelete="SET NULL"), nullable=True)

    is_deleted: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), default=_now_utc, nullable=False, index=True)
