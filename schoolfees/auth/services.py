import logging
import secrets
from typing import Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolfees.auth.models import User
from schoolfees.auth.schemas import AuthResponse, LoginRequest, RegisterRequest, UserInfo
from schoolfees.auth.security import create_access_token, hash_password, verify_password
from schoolfees.core.config import settings
from schoolfees.core.exceptions import AuthenticationError, PermissionDeniedError, ServiceError

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_active_user(db: AsyncSession, user_id: UUID) -> Optional[User]:
    user = await db.get(User, user_id)
    if not user or user.status != "ACTIVE":
        return None
    return user


async def login_user(db: AsyncSession, payload: LoginRequest) -> AuthResponse:
    user = await get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise AuthenticationError("Invalid email or password")
    if user.status != "ACTIVE":
        raise PermissionDeniedError("User is inactive")

    token = create_access_token(subject={"sub": str(user.id), "role": user.role})
    logger.info("User %s logged in", user.id)
    return AuthResponse(success=True, user=UserInfo.model_validate(user), token=token)


def check_system_key(provided: str) -> None:
    expected = settings.system_registration_key
    if not expected or not secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise PermissionDeniedError("Unauthorized: Invalid system key")


async def register_user(db: AsyncSession, payload: RegisterRequest) -> AuthResponse:
    check_system_key(payload.system_key)

    if await get_user_by_email(db, payload.email):
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT)

    user = User(
        email=payload.email.lower(),
        name=payload.name.strip(),
        school_name=payload.school_name.strip(),
        role=payload.role.value,
        password_hash=hash_password(payload.password),
        status="ACTIVE",
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT) from e
    await db.refresh(user)
    logger.info("Registered %s user %s", user.role, user.id)
    return AuthResponse(success=True, user=UserInfo.model_validate(user))
