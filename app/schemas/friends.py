from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class FriendUser(BaseModel):
    id: UUID
    username: str
    display_name: str
    avatar_url: str | None = None


class FriendshipResponse(BaseModel):
    id: UUID
    requester_id: UUID
    recipient_id: UUID
    status: str
    is_blocked: bool
    is_pinned: bool
    alias: str | None = None
    created_at: datetime
    accepted_at: datetime | None = None


class SendFriendRequestResponse(BaseModel):
    outcome: str
    friendship: FriendshipResponse


class FriendRequestItem(BaseModel):
    id: UUID
    user: FriendUser  # the other party
    status: str
    created_at: datetime


class FriendListItem(FriendUser):
    alias: str | None = None
    is_pinned: bool = False


class SetAliasRequest(BaseModel):
    alias: str | None = Field(default=None, max_length=100)


class TogglePinResponse(BaseModel):
    ok: bool
    is_pinned: bool


class CheckFriendshipResponse(BaseModel):
    are_friends: bool


class FriendStatsResponse(BaseModel):
    friend_count: int
    pending_received: int
    pending_sent: int


class OkResponse(BaseModel):
    ok: bool
