from __future__ import annotations
import uuid
import jwt
from fastapi import Cookie, Depends, Header, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from fwb_gallery.db import get_session
from fwb_gallery.security import decode_token
from fwb_gallery.models.user import User

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

VISITOR_COOKIE = "fwb_id"

async def _user_from_token(token: str, session: AsyncSession) -> User:
    try:
        data = decode_token(token, expected_type="access")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        user_id = uuid.UUID(str(data.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = await session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_session)
) -> User:
    return await _user_from_token(credentials.credentials, session)

async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_security),
    session: AsyncSession = Depends(get_session)
) -> User | None:
    if credentials is None:
        return None
    return await _user_from_token(credentials.credentials, session)

async def require_reviewer(user: User = Depends(get_current_user)) -> User:
    if not user.is_reviewer():
        raise HTTPException(status_code=403, detail="Reviewer role required")
    return user

async def get_visitor_token(
    x_visitor_token: str | None = Header(default=None, alias="X-Visitor-Token"),
    fwb_id: str | None = Cookie(default=None, alias=VISITOR_COOKIE),
) -> str | None:
    # Issued by the front end; this service only reads it.
    token = (x_visitor_token or fwb_id or "").strip()
    if len(token) > 64:
        raise HTTPException(status_code=400, detail="Visitor token too long")
    return token or None

async def require_visitor_token(token: str | None = Depends(get_visitor_token)) -> str:
    if not token:
        raise HTTPException(status_code=400, detail="Missing visitor token")
    return token
