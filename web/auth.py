"""Staff authentication for the registration dashboard.

Registrations carry player and guardian contact details, so every read and
every admin action goes through ``require_staff_user``. Account management is
limited to the ``admin`` role.
"""
from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy import select

import config
from academy.models import User
from academy.models.base import async_session_factory

ROLES = ("staff", "admin")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


def _bcrypt_input(password: str) -> str:
    # bcrypt reads at most 72 bytes
    encoded = password.encode("utf-8")
    if len(encoded) > 72:
        return hashlib.sha256(encoded).hexdigest()
    return password


def hash_password(password: str) -> str:
    return pwd_context.hash(_bcrypt_input(password))


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(_bcrypt_input(plain), hashed)


def create_access_token(username: str, role: str) -> str:
    """Signed token for a staff session, valid for JWT_EXPIRE_DAYS."""
    expire = datetime.now(timezone.utc) + timedelta(days=config.JWT_EXPIRE_DAYS)
    claims = {"sub": username, "role": role, "exp": expire}
    return jwt.encode(claims, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None


async def get_user_by_username(username: str) -> Optional[User]:
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()


def _token_from_request(
    credentials: Optional[HTTPAuthorizationCredentials], x_auth_token: Optional[str]
) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return x_auth_token or None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    x_auth_token: Optional[str] = Header(None, alias="X-Auth-Token"),
) -> Optional[User]:
    """Staff account behind the request, or None.

    The dashboard sends ``Authorization: Bearer``; ``X-Auth-Token`` is accepted
    for hosting proxies that drop the Authorization header.
    """
    token = _token_from_request(credentials, x_auth_token)
    if not token:
        return None
    claims = decode_token(token)
    if not claims or not claims.get("sub"):
        return None
    return await get_user_by_username(claims["sub"])


async def require_staff_user(
    user: Optional[User] = Depends(get_current_user),
) -> User:
    """401 unless a staff or admin account is logged in."""
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin_user(
    user: User = Depends(require_staff_user),
) -> User:
    """403 for staff accounts; only admins manage other accounts."""
    if user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
