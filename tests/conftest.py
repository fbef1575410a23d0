import os
import uuid

import pytest
from httpx import ASGITransport, AsyncClient

# IMPORTANT:
# Set env vars BEFORE importing app.settings/app.main (pydantic settings load at import time)
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("JWT_SECRET", "dev-test-secret")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:5173")

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app.main import app as fastapi_app  # noqa: E402
from app.db.base_class import Base  # noqa: E402
import app.db.base  # noqa: F401,E402  (register models)
from app.db.session import get_db_session  # noqa: E402
from app.api.deps import COOKIE_NAME, get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.models.user import User  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    # one database file per test; every session gets its own connection
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}", poolclass=NullPool)

    # let SQLAlchemy emit BEGIN itself so SAVEPOINT (begin_nested) behaves as on postgres
    @event.listens_for(eng.sync_engine, "connect")
    def _no_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """
    Requests get a fresh session each, like in production, so a route that
    rolls back never touches the objects a test is holding.
    """

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_db_session] = _override_get_db

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    fastapi_app.dependency_overrides.pop(get_db, None)
    fastapi_app.dependency_overrides.pop(get_db_session, None)


# --- Small helpers ---

def _unique(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:10]}"


@pytest.fixture
def unique_str():
    return _unique


@pytest.fixture
def make_user(db_session, unique_str):
    async def _create(display_name: str | None = None, *, username: str | None = None, is_active: bool = True) -> User:
        username = username or unique_str("user")
        user = User(
            email=f"{username}@example.com",
            username=username,
            display_name=display_name or username,
            password_hash="not-a-real-hash",
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _create


@pytest.fixture
def user_factory(unique_str):
    async def _create(
        client: AsyncClient,
        *,
        email: str | None = None,
        username: str | None = None,
        display_name: str | None = None,
        password: str = "SuperSecret123",
    ):
        email = email or f"{unique_str('user')}@example.com"
        username = username or unique_str("user")
        display_name = display_name or username
        r = await client.post(
            "/auth/register",
            json={
                "email": email,
                "username": username,
                "display_name": display_name,
                "password": password,
            },
        )
        assert r.status_code == 201, r.text
        return {
            "id": r.json()["id"],
            "email": email,
            "username": username,
            "display_name": display_name,
            "password": password,
        }

    return _create


@pytest.fixture
def login_helper():
    async def _login(client: AsyncClient, *, email: str, password: str):
        client.cookies.clear()
        r = await client.post("/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        token = client.cookies.get(COOKIE_NAME)
        assert token, "Login did not set access_token cookie"
        return token

    return _login


@pytest.fixture
def act_as():
    def _act(client: AsyncClient, user: User | None):
        client.cookies.clear()
        if user is not None:
            client.cookies.set(COOKIE_NAME, create_access_token(str(user.id)))

    return _act
