"""Back-office login, token refresh and account registration."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import (
    authenticate_admin,
    create_admin,
    get_current_user,
    issue_tokens,
    rotate_refresh_token,
    super_admin_required,
)
from .db import get_session
from .models import AdminUser
from .schemas import Admin, LoginIn, RefreshIn, RegisterIn, TokenPair
from .utils.responses import ok

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", summary="Login with email and password")
async def login(body: LoginIn, session: AsyncSession = Depends(get_session)) -> dict:
    admin = await authenticate_admin(session, body.email, body.password)
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )
    return ok(TokenPair(**issue_tokens(admin)))


@router.post("/refresh")
async def refresh(body: RefreshIn, session: AsyncSession = Depends(get_session)) -> dict:
    return ok(TokenPair(**await rotate_refresh_token(session, body.refresh_token)))


@router.post("/register", status_code=201)
async def register(
    body: RegisterIn,
    session: AsyncSession = Depends(get_session),
    _: AdminUser = Depends(super_admin_required),
) -> dict:
    admin = await create_admin(session, body.email, body.password, body.name, body.role)
    return ok(Admin.model_validate(admin))


@router.get("/profile")
async def profile(user: AdminUser = Depends(get_current_user)) -> dict:
    return ok(Admin.model_validate(user))
