"""认证路由（注册 / 登录 / 刷新令牌）"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from ...database import get_db
from ...models import User
from ...schemas import UserCreate, UserLogin, UserResponse, Token, RefreshTokenRequest
from ...utils.security import (
    REFRESH,
    hash_password,
    verify_password,
    issue_token_pair,
    get_token_subject,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _token_response(user: User) -> Token:
    access_token, refresh_token = issue_token_pair(user.id)
    return Token(access_token=access_token, refresh_token=refresh_token)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    """注册新用户，邮箱和用户名都必须未被占用"""
    result = await db.execute(
        select(User).where(or_(User.email == user_in.email, User.username == user_in.username))
    )
    taken = list(result.scalars().all())
    if any(u.email == user_in.email for u in taken):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    if taken:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")

    user = User(
        email=user_in.email,
        username=user_in.username,
        password_hash=hash_password(user_in.password),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info(f"[Auth] 新用户注册 {user.id}")
    return user


@router.post("/login", response_model=Token)
async def login(user_in: UserLogin, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == user_in.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(user_in.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is disabled")

    return _token_response(user)


@router.post("/refresh", response_model=Token)
async def refresh_token(request: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    """用刷新令牌换一对新令牌"""
    user_id = get_token_subject(request.refresh_token, token_type=REFRESH)
    user = await db.get(User, user_id) if user_id else None

    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    return _token_response(user)
