"""
Typed failures raised by the friendship and chat-room services.

Every error carries a stable ``code`` (also its ``str()``), the service
``operation`` that raised it and the entity ids involved, so the HTTP layer
can pick a status and build its own message. Nothing here is user-facing
text.
"""

from __future__ import annotations

from typing import Any


class ChatError(Exception):
    """Base class for recoverable service failures."""

    code = "chat_error"

    def __init__(self, operation: str, **context: Any):
        self.operation = operation
        self.context = context
        super().__init__(self.code)

    def as_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "operation": self.operation,
            "context": {k: str(v) if v is not None else None for k, v in self.context.items()},
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(operation={self.operation!r}, context={self.context!r})"


class NotFoundError(ChatError):
    """Identity or record absent"""

    code = "not_found"


class PermissionError(ChatError):
    """Actor lacks the required role or membership"""

    code = "permission_denied"


class InvalidStateError(ChatError):
    """Operation illegal for the record's current status"""

    code = "invalid_state"


class SelfReferenceError(ChatError):
    code = "self_reference"


# ─────────────────────────────────────────────
# Friendships
# ─────────────────────────────────────────────


class AlreadyFriendsError(ChatError):
    code = "already_friends"


class DuplicateRequestError(ChatError):
    code = "duplicate_request"


class NotFriendsError(ChatError):
    code = "not_friends"


class NotBlockedError(ChatError):
    code = "not_blocked"


# ─────────────────────────────────────────────
# Chat rooms
# ─────────────────────────────────────────────


class NotMemberError(ChatError):
    code = "not_member"


class AlreadyMemberError(ChatError):
    code = "already_member"


class RoomFullError(ChatError):
    code = "room_full"


class PrivateRoomError(ChatError):
    code = "private_room"


class CannotLeavePrivateError(ChatError):
    code = "cannot_leave_private"


class CannotKickOwnerError(ChatError):
    code = "cannot_kick_owner"


class CannotDeletePrivateError(ChatError):
    code = "cannot_delete_private"


class MutedError(ChatError):
    code = "muted"
