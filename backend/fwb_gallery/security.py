from __future__ import annotations
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any
import jwt
from passlib.context import CryptContext
from fwb_gallery.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

JWT_ALG = "HS256"

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)

def _make_token(sub: str, ttl_min: int, token_type: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "type": token_type,
        "jti": uuid.uuid4().hex,  # distinct even when issued in the same instant
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl_min)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALG)

def make_access_token(sub: str) -> str:
    return _make_token(sub, settings.access_ttl_min, "access")

def make_refresh_token(sub: str) -> str:
    return _make_token(sub, settings.refresh_ttl_min, "refresh")

def make_token_pair(sub: str) -> tuple[str, str]:
    return make_access_token(sub), make_refresh_token(sub)

def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any]:
    """Verified claims; raises jwt.InvalidTokenError on a bad signature, expiry or wrong type."""
    data = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALG])
    if expected_type is not None and data.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"expected {expected_type} token")
    return data
