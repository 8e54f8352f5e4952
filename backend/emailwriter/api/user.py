from typing import Annotated

from fastapi import APIRouter, Depends

from emailwriter.models.user import User
from emailwriter.schemas.user import UserResponse
from emailwriter.security import get_current_user

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: Annotated[User, Depends(get_current_user)]):
    return current_user
