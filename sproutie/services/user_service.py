import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sproutie.core.exceptions import ConflictError, NotFoundError, ValidationError
from sproutie.models.user import User
from sproutie.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


async def get_user_by_uid(db: AsyncSession, firebase_uid: str) -> Optional[User]:
    result = await db.execute(
        select(User).where(User.firebase_uid == firebase_uid, User.is_active.is_(True))
    )
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, firebase_uid: str) -> User:
    user = await get_user_by_uid(db, firebase_uid)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def create_user(db: AsyncSession, data: UserCreate, email_verified: Optional[bool] = None) -> User:
    """
    Create a profile. When the caller's verified token is at hand its
    ``email_verified`` claim wins over the value in ``data``.
    """
    if not data.firebase_uid or not data.email:
        raise ValidationError("Firebase UID and email are required")

    # Inactive users still own their subject id
    existing = await db.scalar(select(User.id).where(User.firebase_uid == data.firebase_uid))
    if existing is not None:
        raise ConflictError("User already exists")

    user = User(
        firebase_uid=data.firebase_uid,
        email=data.email.lower(),
        display_name=data.display_name,
        email_verified=data.email_verified if email_verified is None else email_verified,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User already exists")
    await db.refresh(user)
    logger.info("New user created: %s (%s)", user.email, user.firebase_uid)
    return user


async def update_user(
    db: AsyncSession, firebase_uid: str, data: UserUpdate, email_verified: Optional[bool] = None
) -> User:
    user = await get_user(db, firebase_uid)
    for field, value in data.model_dump(exclude_none=True).items():
        setattr(user, field, value)
    if email_verified is not None:
        user.email_verified = email_verified
    await db.commit()
    await db.refresh(user)
    return user
