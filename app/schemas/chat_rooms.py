from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field
from typing import List


class CreateGroupChatRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    member_ids: List[UUID] = Field(default_factory=list)


class UpdateChatRoomRequest(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    avatar_url: str | None = Field(default=None, max_length=500)


class ChatRoomResponse(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    room_type: str
    avatar_url: str | None = None
    created_by_id: UUID
    is_private: bool
    max_members: int
    member_count: int
    created_at: datetime


class ChatRoomMemberResponse(BaseModel):
    user_id: UUID
    username: str | None = None
    display_name: str | None = None
    role: str
    is_admin: bool
    is_muted: bool
    nickname: str | None = None
    unread_count: int
    joined_at: datetime


class MembershipStatusResponse(BaseModel):
    user_id: UUID
    role: str
    is_admin: bool
    is_muted: bool


class OkResponse(BaseModel):
    ok: bool
