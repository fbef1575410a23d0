from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.core import errors
from app.models.message import MessageType
from app.services import chat_rooms, messages

pytestmark = pytest.mark.anyio


async def _team(db, make_user):
    owner = await make_user()
    a = await make_user()
    b = await make_user()
    room = await chat_rooms.create_group_chat(db, owner.id, "Team", None, [a.id, b.id])
    return room, owner, a, b


async def test_send_message_bumps_unread_for_everyone_else(db_session, make_user):
    room, owner, a, b = await _team(db_session, make_user)

    await messages.send_message(db_session, room.id, owner.id, "hi all")
    await messages.send_message(db_session, room.id, a.id, "hello")

    assert await messages.unread_count(db_session, room.id, owner.id) == 1
    assert await messages.unread_count(db_session, room.id, a.id) == 1
    assert await messages.unread_count(db_session, room.id, b.id) == 2
    assert await messages.total_unread_count(db_session, b.id) == 2


async def test_non_member_cannot_send_or_read(db_session, make_user):
    room, _, _, _ = await _team(db_session, make_user)
    outsider = await make_user()

    with pytest.raises(errors.NotMemberError):
        await messages.send_message(db_session, room.id, outsider.id, "let me in")
    with pytest.raises(errors.NotMemberError):
        await messages.list_messages(db_session, room.id, outsider.id)
    with pytest.raises(errors.NotMemberError):
        await messages.unread_count(db_session, room.id, outsider.id)


async def test_muted_member_cannot_send(db_session, make_user):
    room, owner, a, b = await _team(db_session, make_user)
    await chat_rooms.toggle_mute_status(db_session, room.id, owner.id, a.id)

    with pytest.raises(errors.MutedError):
        await messages.send_message(db_session, room.id, a.id, "can anyone hear me")

    assert await messages.unread_count(db_session, room.id, b.id) == 0
    # muted members still read the room
    assert await messages.list_messages(db_session, room.id, a.id) == []


async def test_mark_all_read_resets_counter(db_session, make_user):
    room, owner, a, _ = await _team(db_session, make_user)
    await messages.send_message(db_session, room.id, owner.id, "one")
    last = await messages.send_message(db_session, room.id, owner.id, "two")

    membership = await messages.mark_all_read(db_session, room.id, a.id)

    assert membership.unread_count == 0
    assert membership.last_read_message_id == last.id
    assert await messages.unread_count(db_session, room.id, a.id) == 0


async def test_list_messages_newest_first_with_limit(db_session, make_user):
    room, owner, a, _ = await _team(db_session, make_user)
    sent = [await messages.send_message(db_session, room.id, owner.id, f"m{i}") for i in range(3)]

    listed = await messages.list_messages(db_session, room.id, a.id, limit=2)
    assert [m.content for m in listed] == ["m2", "m1"]
    assert {m.id for m in await messages.list_messages(db_session, room.id, a.id)} == {m.id for m in sent}


async def test_reply_must_target_message_in_same_room(db_session, make_user):
    room, owner, a, _ = await _team(db_session, make_user)
    original = await messages.send_message(db_session, room.id, owner.id, "question?")

    reply = await messages.send_message(
        db_session, room.id, a.id, "answer", message_type=MessageType.TEXT, reply_to_id=original.id
    )
    assert reply.reply_to_id == original.id

    with pytest.raises(errors.NotFoundError):
        await messages.send_message(db_session, room.id, a.id, "lost", reply_to_id=uuid.uuid4())


async def test_sender_recalls_recent_message(db_session, make_user):
    room, owner, a, _ = await _team(db_session, make_user)
    kept = await messages.send_message(db_session, room.id, owner.id, "kept")
    oops = await messages.send_message(db_session, room.id, a.id, "wrong room, sorry")

    with pytest.raises(errors.PermissionError):
        await messages.recall_message(db_session, room.id, oops.id, owner.id)

    recalled = await messages.recall_message(db_session, room.id, oops.id, a.id)
    assert recalled.is_deleted is True
    assert recalled.content == messages.RECALLED_CONTENT
    assert [m.id for m in await messages.list_messages(db_session, room.id, owner.id)] == [kept.id]

    # gone for good: no second recall and no replies to it
    with pytest.raises(errors.NotFoundError):
        await messages.recall_message(db_session, room.id, oops.id, a.id)
    with pytest.raises(errors.NotFoundError):
        await messages.send_message(db_session, room.id, owner.id, "what?", reply_to_id=oops.id)


async def test_recall_window_expires(db_session, make_user):
    room, _, a, _ = await _team(db_session, make_user)
    message = await messages.send_message(db_session, room.id, a.id, "too late")
    message.created_at = datetime.now(timezone.utc) - timedelta(minutes=3)
    await db_session.flush()

    with pytest.raises(errors.InvalidStateError) as exc:
        await messages.recall_message(db_session, room.id, message.id, a.id)
    assert exc.value.context["reason"] == "recall_window_expired"
    assert message.is_deleted is False
    assert message.content == "too late"


async def test_delete_message_sender_or_admin(db_session, make_user):
    room, owner, a, b = await _team(db_session, make_user)
    first = await messages.send_message(db_session, room.id, a.id, "first")
    second = await messages.send_message(db_session, room.id, a.id, "second")
    third = await messages.send_message(db_session, room.id, b.id, "third")

    with pytest.raises(errors.PermissionError):
        await messages.delete_message(db_session, room.id, first.id, b.id)

    by_admin = await messages.delete_message(db_session, room.id, first.id, owner.id)
    assert by_admin.is_deleted is True
    assert by_admin.content == messages.DELETED_CONTENT

    # no time limit for the sender
    second.created_at = datetime.now(timezone.utc) - timedelta(days=1)
    await db_session.flush()
    assert (await messages.delete_message(db_session, room.id, second.id, a.id)).is_deleted is True

    assert [m.id for m in await messages.list_messages(db_session, room.id, b.id)] == [third.id]


async def test_delete_message_unknown_or_other_room(db_session, make_user):
    room, owner, a, _ = await _team(db_session, make_user)
    other = await chat_rooms.create_group_chat(db_session, owner.id, "Elsewhere", None, [a.id])
    message = await messages.send_message(db_session, other.id, a.id, "over here")

    with pytest.raises(errors.NotFoundError):
        await messages.delete_message(db_session, room.id, message.id, a.id)
    with pytest.raises(errors.NotFoundError):
        await messages.delete_message(db_session, room.id, uuid.uuid4(), owner.id)

    await messages.delete_message(db_session, other.id, message.id, a.id)
    with pytest.raises(errors.NotFoundError):
        await messages.delete_message(db_session, other.id, message.id, owner.id)


async def test_message_membership_check_is_the_room_one(db_session, make_user):
    assert messages.require_member is chat_rooms.require_member

    room, owner, a, _ = await _team(db_session, make_user)
    await chat_rooms.kick_member(db_session, room.id, owner.id, a.id)
    with pytest.raises(errors.NotMemberError) as exc:
        await messages.mark_all_read(db_session, room.id, a.id)
    assert exc.value.operation == "mark_all_read"
