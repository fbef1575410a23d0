from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import COOKIE_NAME, get_db
from app.core.config import settings
from app.core.security import create_access_token, hash_password, verify_password
from app.models.user import User
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RegisterRequest,
    RegisterResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_cookie_options() -> dict[str, object]:
    return {
        "httponly": True,
        "secure": settings.auth_cookie_secure_value(),
        "samesite": settings.auth_cookie_samesite,
        "path": "/",
    }


def _set_auth_cookie(response: Response, user_id: str) -> None:
    token = create_access_token(subject=user_id)
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        **_auth_cookie_options(),
    )


def _clear_auth_cookie(response: Response) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value="",
        max_age=0,
        expires=0,
        **_auth_cookie_options(),
    )


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db)):
    email = payload.email.lower().strip()
    result = await db.execute(
        select(User).where((User.email == email) | (User.username == payload.username))
    )
    existing = result.scalars().first()
    if existing:
        raise HTTPException(status_code=409, detail="Email or username already in use")

    user = User(
        email=email,
        username=payload.username,
        display_name=payload.display_name,
        password_hash=hash_password(payload.password),
        is_active=True,
    )
    db.add(user)
    await db.commit()

    return RegisterResponse(id=user.id)


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == payload.email.lower().strip()))
    user = result.scalar_one_or_none()

    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    _set_auth_cookie(response, str(user.id))
    return LoginResponse(ok=True)


@router.post("/logout", response_model=LogoutResponse)
async def logout(response: Response):
    _clear_auth_cookie(response)
    return LogoutResponse(ok=True)
