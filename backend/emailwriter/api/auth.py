import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from emailwriter.api.dependencies import get_settings_store
from emailwriter.config import Settings, get_settings
from emailwriter.db.postgres import get_db
from emailwriter.exceptions import AppError
from emailwriter.models.user import User
from emailwriter.schemas.user import UserCreate, UserResponse, TokenWithUser
from emailwriter.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    get_current_user,
)
from emailwriter.services.settings_store import SettingsStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=TokenWithUser, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    settings_store: SettingsStore = Depends(get_settings_store),
    config: Settings = Depends(get_settings),
):
    result = await db.execute(select(User).where(User.email == data.email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists."
        )

    user = User(
        email=data.email,
        hashed_password=get_password_hash(data.password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    # Settings are read lazily with defaults too, so a failure here is not fatal
    try:
        await settings_store.create_defaults(user.id)
    except AppError:
        logger.error("Failed to create default LLM settings for user_id %s", user.id, extra={"user_id": user.id})

    access_token = create_access_token(data={"sub": str(user.id)}, config=config)

    return TokenWithUser(
        access_token=access_token,
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=TokenWithUser)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    result = await db.execute(select(User).where(User.email == form_data.username))
    user = result.scalar_one_or_none()

    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    access_token = create_access_token(data={"sub": str(user.id)}, config=config)

    return TokenWithUser(
        access_token=access_token,
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )


@router.post("/logout")
async def logout(current_user: Annotated[User, Depends(get_current_user)]):
    """Tokens are stateless; the client discards its copy."""
    return {"message": "Logout processed. Client should clear token."}

