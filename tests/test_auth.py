import pytest

pytestmark = pytest.mark.anyio


async def test_register_login_me(client, user_factory, login_helper):
    user = await user_factory(client, display_name="A")
    await login_helper(client, email=user["email"], password=user["password"])

    r = await client.get("/me")
    assert r.status_code == 200
    data = r.json()
    assert data["id"] == user["id"]
    assert data["email"] == user["email"]
    assert data["username"] == user["username"]
    assert data["display_name"] == "A"
    assert data["is_active"] is True


async def test_register_rejects_duplicate_email(client, user_factory):
    user = await user_factory(client)
    r = await client.post(
        "/auth/register",
        json={
            "email": user["email"].upper(),
            "username": "someone_else",
            "display_name": "Someone",
            "password": "SuperSecret123",
        },
    )
    assert r.status_code == 409


async def test_login_rejects_wrong_password(client, user_factory):
    user = await user_factory(client)
    r = await client.post("/auth/login", json={"email": user["email"], "password": "WrongPassword1"})
    assert r.status_code == 401
    assert client.cookies.get("access_token") is None


async def test_me_requires_auth(client):
    r = await client.get("/me")
    assert r.status_code == 401


async def test_stale_cookie_is_rejected(client, act_as, make_user, db_session):
    user = await make_user()
    act_as(client, user)
    assert (await client.get("/me")).status_code == 200

    user.is_active = False
    await db_session.commit()
    assert (await client.get("/me")).status_code == 401


async def test_garbage_cookie_is_rejected(client):
    client.cookies.set("access_token", "not-a-jwt")
    r = await client.get("/friends")
    assert r.status_code == 401


async def test_logout_revokes_auth_cookie(client, user_factory, login_helper):
    user = await user_factory(client, display_name="A")
    await login_helper(client, email=user["email"], password=user["password"])

    me_before = await client.get("/me")
    assert me_before.status_code == 200

    logout = await client.post("/auth/logout")
    assert logout.status_code == 200
    assert logout.json() == {"ok": True}

    me_after = await client.get("/me")
    assert me_after.status_code == 401


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}
