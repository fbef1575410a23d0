from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class FriendshipStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    BLOCKED = "blocked"


class Friendship(Base):
    """
    One row per unordered pair of users.

    requester/recipient keep the direction of the original request;
    user_low_id/user_high_id are the canonical pair the unique constraint
    is declared on, so two opposite requests cannot both be inserted.
    """

    __tablename__ = "friendships"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    requester_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    user_low_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), nullable=False, index=True)
    user_high_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), nullable=False, index=True)

    status: Mapped[FriendshipStatus] = mapped_column(
        sa.Enum(
            FriendshipStatus,
            name="friendship_status",
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=FriendshipStatus.PENDING,
        nullable=False,
    )
    is_blocked: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    alias: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), default=_now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), default=_now_utc, onupdate=_now_utc, nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        sa.UniqueConstraint("user_low_id", "user_high_id", name="uq_friendships_pair"),
        sa.CheckConstraint("requester_id <> recipient_id", name="ck_friendships_not_self"),
    )

    requester = relationship("User", foreign_keys=[requester_id], lazy="joined")
    recipient = relationship("User", foreign_keys=[recipient_id], lazy="joined")

    @property
    def is_mutual(self) -> bool:
        return self.status == FriendshipStatus.ACCEPTED and not self.is_blocked

    def other_party_id(self, me: uuid.UUID) -> uuid.UUID:
        return self.recipient_id if self.requester_id == me else self.requester_id

    def accept(self) -> None:
        self.status = FriendshipStatus.ACCEPTED
        self.accepted_at = _now_utc()

    def decline(self) -> None:
        self.status = FriendshipStatus.DECLINED

    def block(self) -> None:
        self.status = FriendshipStatus.BLOCKED
        self.is_blocked = True
