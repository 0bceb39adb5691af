import logging
from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import RefreshToken, User
from app.auth.schemas import LoginRequest, LoginResponse, UserInfo
from app.auth.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from app.core.enums import UserRole
from app.core.exceptions import ServiceError

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    full_name: str,
    role: str,
    commit: bool = True,
) -> User:
    """
    Provision a principal. With commit=False the row is only flushed so callers can attach
    profile rows (Teacher/Student) in the same transaction.
    """
    if role not in {r.value for r in UserRole}:
        raise ServiceError(f"Invalid role: {role}", status.HTTP_400_BAD_REQUEST)
    if await get_user_by_email(db, email):
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT)

    user = User(
        email=email.strip().lower(),
        full_name=full_name.strip(),
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.add(user)
    try:
        if commit:
            await db.commit()
            await db.refresh(user)
        else:
            await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT) from e
    return user


def _user_info(user: User) -> UserInfo:
    return UserInfo(id=user.id, email=user.email, full_name=user.full_name, role=user.role)


async def _issue_tokens(db: AsyncSession, user: User) -> Tuple[str, str]:
    access_token = create_access_token(user.id, user.role)
    refresh_token_str, refresh_expires_at = create_refresh_token()
    db.add(
        RefreshToken(
            user_id=user.id,
            token=refresh_token_str,
            expires_at=refresh_expires_at,
        )
    )
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError(
            "Failed to persist authentication state",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        ) from e
    return access_token, refresh_token_str


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    user = await get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)
    if not user.is_active:
        raise ServiceError("User is inactive", status.HTTP_403_FORBIDDEN)

    access_token, refresh_token = await _issue_tokens(db, user)
    logger.info("User %s logged in as %s", user.id, user.role)
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=_user_info(user),
    )


def _is_expired(expires_at: datetime) -> bool:
    # SQLite hands back naive datetimes
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= datetime.now(timezone.utc)


async def refresh_session(db: AsyncSession, refresh_token: str) -> LoginResponse:
    """Rotate a refresh token: the presented one is consumed and a new pair issued."""
    result = await db.execute(select(RefreshToken).where(RefreshToken.token == refresh_token))
    stored: Optional[RefreshToken] = result.scalar_one_or_none()
    if not stored:
        raise ServiceError("Invalid refresh token", status.HTTP_401_UNAUTHORIZED)

    user = await db.get(User, stored.user_id)
    expired = _is_expired(stored.expires_at)
    await db.delete(stored)
    if expired or not user or not user.is_active:
        await db.commit()
        raise ServiceError("Invalid refresh token", status.HTTP_401_UNAUTHORIZED)

    access_token, new_refresh = await _issue_tokens(db, user)
    return LoginResponse(
        access_token=access_token,
        refresh_token=new_refresh,
        user=_user_info(user),
    )


async def logout(db: AsyncSession, user_id: UUID, refresh_token: str) -> None:
    await db.execute(
        delete(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .where(RefreshToken.token == refresh_token)
    )
    await db.commit()
