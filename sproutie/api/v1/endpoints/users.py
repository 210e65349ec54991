from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sproutie.core.deps import CurrentPrincipal, get_db
from sproutie.core.exceptions import ForbiddenError
from sproutie.schemas.user import UserCreate, UserRead, UserResponse, UserUpdate
from sproutie.services.user_service import create_user, get_user, update_user

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(data: UserCreate, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)):
    """Create the profile for a freshly registered Firebase account."""
    if data.firebase_uid != principal.uid:
        raise ForbiddenError("Cannot create a profile for another user")
    user = await create_user(db, data, email_verified=principal.email_verified)
    return UserResponse(message="User created successfully", user=UserRead.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def get_me(principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)):
    user = await get_user(db, principal.uid)
    return UserResponse(user=UserRead.model_validate(user))


@router.patch("/me", response_model=UserResponse)
async def patch_me(body: UserUpdate, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)):
    user = await update_user(db, principal.uid, body, email_verified=principal.email_verified)
    return UserResponse(message="User updated successfully", user=UserRead.model_validate(user))


@router.get("/{firebase_uid}", response_model=UserResponse)
async def get_user_by_firebase_uid(
    firebase_uid: str, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)
):
    user = await get_user(db, firebase_uid)
    return UserResponse(user=UserRead.model_validate(user))
