import uuid

import pytest

pytestmark = pytest.mark.anyio


async def test_friend_request_flow(client, act_as, make_user):
    alice = await make_user("Alice", username="alice")
    bob = await make_user("Bob", username="bob")

    act_as(client, alice)
    r = await client.post(f"/friends/request/{bob.id}")
    assert r.status_code == 201, r.text
    assert r.json()["outcome"] == "created"
    assert r.json()["friendship"]["status"] == "pending"

    sent = await client.get("/friends/requests/sent")
    assert [item["user"]["id"] for item in sent.json()] == [str(bob.id)]

    act_as(client, bob)
    received = await client.get("/friends/requests/received")
    assert received.status_code == 200
    assert [item["user"]["username"] for item in received.json()] == ["alice"]

    r = await client.post(f"/friends/accept/{alice.id}")
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "accepted"

    listed = await client.get("/friends")
    assert [f["id"] for f in listed.json()] == [str(alice.id)]

    check = await client.get(f"/friends/check/{alice.id}")
    assert check.json() == {"are_friends": True}

    stats = await client.get("/friends/stats")
    assert stats.json() == {"friend_count": 1, "pending_received": 0, "pending_sent": 0}


async def test_mutual_request_over_http_auto_accepts(client, act_as, make_user):
    alice = await make_user()
    bob = await make_user()

    act_as(client, alice)
    await client.post(f"/friends/request/{bob.id}")

    act_as(client, bob)
    r = await client.post(f"/friends/request/{alice.id}")
    assert r.status_code == 201
    assert r.json()["outcome"] == "auto_accepted"
    assert r.json()["friendship"]["status"] == "accepted"


async def test_friend_error_statuses(client, act_as, make_user):
    alice = await make_user()
    bob = await make_user()
    act_as(client, alice)

    r = await client.post(f"/friends/request/{alice.id}")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "self_reference"
    assert r.json()["detail"]["operation"] == "send_request"

    r = await client.post(f"/friends/request/{uuid.uuid4()}")
    assert r.status_code == 404

    await client.post(f"/friends/request/{bob.id}")
    r = await client.post(f"/friends/request/{bob.id}")
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "duplicate_request"

    # only the recipient may accept
    r = await client.post(f"/friends/accept/{bob.id}")
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "permission_denied"

    act_as(client, bob)
    r = await client.delete(f"/friends/{alice.id}")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "not_friends"


async def test_alias_pin_and_search(client, act_as, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob Builder")

    act_as(client, alice)
    await client.post(f"/friends/request/{bob.id}")
    act_as(client, bob)
    await client.post(f"/friends/accept/{alice.id}")

    act_as(client, alice)
    r = await client.put(f"/friends/{bob.id}/alias", json={"alias": "Fixer"})
    assert r.status_code == 200
    assert r.json()["alias"] == "Fixer"

    r = await client.post(f"/friends/{bob.id}/pin")
    assert r.json() == {"ok": True, "is_pinned": True}
    pinned = await client.get("/friends/pinned")
    assert [u["id"] for u in pinned.json()] == [str(bob.id)]

    found = await client.get("/friends/search", params={"keyword": "fix"})
    assert [u["id"] for u in found.json()] == [str(bob.id)]

    listed = await client.get("/friends")
    assert listed.json()[0]["alias"] == "Fixer"
    assert listed.json()[0]["is_pinned"] is True


async def test_block_and_unblock(client, act_as, make_user):
    alice = await make_user()
    bob = await make_user()
    act_as(client, alice)

    r = await client.post(f"/friends/block/{bob.id}")
    assert r.status_code == 200
    assert r.json()["is_blocked"] is True
    blocked = await client.get("/friends/blocked")
    assert [u["id"] for u in blocked.json()] == [str(bob.id)]

    act_as(client, bob)
    r = await client.post(f"/friends/request/{alice.id}")
    assert r.status_code == 403

    act_as(client, alice)
    r = await client.post(f"/friends/unblock/{bob.id}")
    assert r.status_code == 200
    assert r.json()["status"] == "declined"
    assert (await client.get("/friends/blocked")).json() == []


async def test_friend_routes_require_auth(client):
    assert (await client.get("/friends")).status_code == 401
    assert (await client.post(f"/friends/request/{uuid.uuid4()}")).status_code == 401
