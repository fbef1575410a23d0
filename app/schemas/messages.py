from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.message import MessageType


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    message_type: MessageType = MessageType.TEXT
    reply_to_id: UUID | None = None


class MessageResponse(BaseModel):
    id: UUID
    chat_room_id: UUID
    sender_id: UUID
    content: str
    message_type: str
    reply_to_id: UUID | None = None
    is_deleted: bool = False
    created_at: datetime


class UnreadCountResponse(BaseModel):
    unread_count: int
