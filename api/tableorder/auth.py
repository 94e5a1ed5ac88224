# auth.py

"""JWT authentication for the back-office endpoints.

Administrators live in ``admin_users`` with argon2 password hashes. Access
tokens carry ``sub`` (the email) and ``role``; refresh tokens carry a ``jti``
that is rotated on every use.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, VerifyMismatchError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .db import atomic, get_session
from .domain import ConflictError, InvalidStateError
from .models import AdminUser

logger = logging.getLogger("tableorder.auth")

ALGORITHM = "HS256"

# jti values of refresh tokens that have not been used yet
valid_refresh_tokens: set[str] = set()

ph = PasswordHasher()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


class AdminRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    MANAGER = "MANAGER"


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a stored hash."""

    try:
        return ph.verify(hashed_password, plain_password)
    except VerifyMismatchError:
        return False
    except VerificationError as exc:  # pragma: no cover - unexpected
        logger.error("argon2 verification error: %s", exc)
        raise


async def find_admin(session: AsyncSession, email: str) -> Optional[AdminUser]:
    return (
        await session.execute(select(AdminUser).where(AdminUser.email == email))
    ).scalar_one_or_none()


async def authenticate_admin(
    session: AsyncSession, email: str, password: str
) -> Optional[AdminUser]:
    """Return the active admin if credentials match, else ``None``."""

    admin = await find_admin(session, email)
    if admin is None or not admin.is_active:
        return None
    if not verify_password(password, admin.password_hash):
        return None
    return admin


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT containing the provided claims."""

    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def create_refresh_token(sub: str) -> str:
    """Create a single-use refresh token for ``sub``."""

    settings = get_settings()
    jti = uuid.uuid4().hex
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.refresh_token_expire_minutes
    )
    payload = {"sub": sub, "jti": jti, "type": "refresh", "exp": expire}
    token = jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)
    valid_refresh_tokens.add(jti)
    return token


def issue_tokens(admin: AdminUser) -> dict:
    return {
        "access_token": create_access_token({"sub": admin.email, "role": admin.role}),
        "refresh_token": create_refresh_token(admin.email),
        "token_type": "bearer",
        "role": admin.role,
    }


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def rotate_refresh_token(session: AsyncSession, token: str) -> dict:
    """Validate ``token``, burn it and issue a fresh token pair."""

    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except jwt.PyJWTError as exc:
        raise _unauthorized(str(exc))
    if payload.get("type") != "refresh":
        raise _unauthorized("wrong token type")
    jti = payload.get("jti")
    if jti not in valid_refresh_tokens:
        raise _unauthorized("token reuse")
    valid_refresh_tokens.discard(jti)
    admin = await find_admin(session, payload.get("sub", ""))
    if admin is None or not admin.is_active:
        raise _unauthorized("unknown account")
    return issue_tokens(admin)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> AdminUser:
    """Resolve the admin from a bearer token or raise ``HTTPException``."""

    credentials_exception = _unauthorized("Could not validate credentials")
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        raise credentials_exception
    email = payload.get("sub")
    if email is None or payload.get("type") != "access":
        raise credentials_exception
    admin = await find_admin(session, email)
    if admin is None or not admin.is_active:
        raise credentials_exception
    return admin


def role_required(*roles: str):
    """Dependency factory enforcing that the current user has one of ``roles``."""

    def dependency(user: AdminUser = Depends(get_current_user)) -> AdminUser:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient privileges"
            )
        return user

    return dependency


# Any back-office account
admin_required = role_required(AdminRole.SUPER_ADMIN.value, AdminRole.MANAGER.value)
super_admin_required = role_required(AdminRole.SUPER_ADMIN.value)


async def create_admin(
    session: AsyncSession,
    email: str,
    password: str,
    name: str,
    role: str = AdminRole.MANAGER.value,
) -> AdminUser:
    """Register a back-office account; the email must be unused."""

    if role not in {r.value for r in AdminRole}:
        raise InvalidStateError(f"unknown role {role}", {"role": role})
    async with atomic(session):
        if await find_admin(session, email) is not None:
            raise ConflictError(f"{email} is already registered", {"email": email})
        admin = AdminUser(
            email=email,
            password_hash=hash_password(password),
            name=name,
            role=role,
            is_active=True,
        )
        session.add(admin)
    logger.info("admin %s registered with role %s", admin.id, role)
    return admin
