"""Auth API routes: login, current user, staff accounts."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import select

import config
from academy.models import User
from academy.models.base import async_session_factory
from web.api.utils import envelope
from web.auth import (
    ROLES,
    create_access_token,
    get_user_by_username,
    hash_password,
    require_admin_user,
    require_staff_user,
    verify_password,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    access_token: str
    token_type: str = "bearer"
    username: str
    role: str


class UserResponse(BaseModel):
    username: str
    role: str


class CreateUserRequest(BaseModel):
    username: str
    password: str
    role: str = "staff"  # staff, admin


def _login_response(user: User) -> dict:
    token = create_access_token(user.username, user.role)
    body = LoginResponse(access_token=token, username=user.username, role=user.role)
    return envelope(body.model_dump(by_alias=True), "Login successful")


@router.post("/login")
async def login(body: LoginRequest):
    """Authenticate and return JWT."""
    user = await get_user_by_username(body.username)
    if not user:
        # Bootstrap: if INITIAL_ADMIN_PASSWORD is set and matches, create admin
        if (
            config.INITIAL_ADMIN_PASSWORD
            and body.username == config.INITIAL_ADMIN_USERNAME
            and body.password == config.INITIAL_ADMIN_PASSWORD
        ):
            async with async_session_factory() as session:
                user = User(
                    username=config.INITIAL_ADMIN_USERNAME,
                    password_hash=hash_password(config.INITIAL_ADMIN_PASSWORD),
                    role="admin",
                )
                session.add(user)
                await session.commit()
                await session.refresh(user)
            return _login_response(user)
        raise HTTPException(status_code=401, detail="Invalid username or password")
    if not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return _login_response(user)


@router.get("/me")
async def get_me(user: User = Depends(require_staff_user)):
    """Get current authenticated user."""
    return envelope(UserResponse(username=user.username, role=user.role).model_dump())


@router.post("/users", status_code=201)
async def create_user(body: CreateUserRequest, admin: User = Depends(require_admin_user)):
    """Create a staff account (admin only)."""
    if body.role not in ROLES:
        raise HTTPException(400, "Invalid role")
    async with async_session_factory() as session:
        existing = await session.execute(select(User).where(User.username == body.username))
        if existing.scalar_one_or_none():
            raise HTTPException(400, "Username already exists")
        user = User(
            username=body.username,
            password_hash=hash_password(body.password),
            role=body.role,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return envelope(UserResponse(username=user.username, role=user.role).model_dump(), "User created")
