"""路由依赖：身份验证与按请求构造的服务"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import User
from ..services.exceptions import AuthError
from ..services.link_store import LinkStore
from ..services.collection_sync import CollectionSyncEngine
from ..services.share import ShareResolver
from ..services.metadata import MetadataResolver
from ..utils.security import get_token_subject

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """从 Bearer 令牌解析当前用户，任何失败都返回统一的 401"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError()

    user_id = get_token_subject(credentials.credentials)
    if not user_id:
        raise AuthError()

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise AuthError()

    return user


async def get_link_store(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> LinkStore:
    """绑定到当前用户的链接存储"""
    return LinkStore(db, current_user.id)


async def get_sync_engine(db: AsyncSession = Depends(get_db)) -> CollectionSyncEngine:
    return CollectionSyncEngine(db)


async def get_share_resolver(db: AsyncSession = Depends(get_db)) -> ShareResolver:
    return ShareResolver(db)


def get_metadata_resolver() -> MetadataResolver:
    return MetadataResolver()
