"""当前用户"""
from fastapi import APIRouter, Depends

from ...models import User
from ...schemas import UserResponse
from ...api.deps import get_current_user

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user
