from __future__ import annotations
import jwt
from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from fwb_gallery.db import get_session
from fwb_gallery.auth_deps import get_current_user
from fwb_gallery.models.user import User
from fwb_gallery.schemas.auth import RegisterRequest, LoginRequest, UserPublic, TokenPair
from fwb_gallery.security import hash_password, verify_password, make_token_pair, decode_token

router = APIRouter(prefix="/auth", tags=["auth"])

def _public(user: User) -> UserPublic:
    return UserPublic(id=user.id, email=user.email, name=user.name, role=user.role, created_at=user.created_at)

@router.post("/register", status_code=201, response_model=UserPublic)
async def register(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    email = payload.email.lower()
    exists = await session.scalar(select(User).where(User.email == email))
    if exists:
        raise HTTPException(status_code=409, detail="Email already registered")
    user = User(email=email, name=payload.name.strip(), password_hash=hash_password(payload.password), role="user")
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    await session.refresh(user)
    return _public(user)

@router.post("/login", response_model=TokenPair)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    user = await session.scalar(select(User).where(User.email == payload.email.lower()))
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    access, refresh_token = make_token_pair(str(user.id))
    return TokenPair(access=access, refresh=refresh_token)

@router.post("/refresh", response_model=TokenPair)
async def refresh(authorization: str | None = Header(None)):
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing refresh token")
    token = authorization.split(" ", 1)[1]
    try:
        data = decode_token(token, expected_type="refresh")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if not data.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")
    access, refresh_token = make_token_pair(data["sub"])
    return TokenPair(access=access, refresh=refresh_token)

@router.get("/me", response_model=UserPublic)
async def me(user: User = Depends(get_current_user)):
    return _public(user)
