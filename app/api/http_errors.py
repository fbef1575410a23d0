from __future__ import annotations

from collections.abc import Mapping

from fastapi import HTTPException

from app.core import errors

# Status per error code; anything unlisted is a 400.
CHAT_ERROR_STATUSES: Mapping[str, int] = {
    errors.NotFoundError.code: 404,
    errors.PermissionError.code: 403,
    errors.MutedError.code: 403,
    errors.PrivateRoomError.code: 403,
    errors.AlreadyFriendsError.code: 409,
    errors.DuplicateRequestError.code: 409,
    errors.AlreadyMemberError.code: 409,
    errors.RoomFullError.code: 409,
    errors.InvalidStateError.code: 409,
}


def chat_error(
    exc: errors.ChatError,
    *,
    code_statuses: Mapping[str, int] | None = None,
    default_status: int = 400,
) -> HTTPException:
    statuses = {**CHAT_ERROR_STATUSES, **(code_statuses or {})}
    return HTTPException(
        status_code=statuses.get(exc.code, default_status),
        detail=exc.as_dict(),
    )
