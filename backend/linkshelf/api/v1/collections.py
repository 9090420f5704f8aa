"""分享集合路由"""
from fastapi import APIRouter, Depends, Query, Body
from typing import Optional

from ...models import User
from ...schemas import CollectionCreate, CollectionEnvelope, SharedCollectionEnvelope
from ...services.collection_sync import CollectionSyncEngine
from ...services.exceptions import ValidationError
from ...services.share import ShareResolver
from ...api.deps import get_current_user, get_sync_engine, get_share_resolver

router = APIRouter()


@router.post("", response_model=CollectionEnvelope)
async def share_collection(
    collection_in: Optional[CollectionCreate] = Body(None),
    current_user: User = Depends(get_current_user),
    engine: CollectionSyncEngine = Depends(get_sync_engine),
):
    """
    获取分享链接

    首次调用创建集合并分配 share_id；之后每次调用复用同一个集合，
    并把集合内容同步为当前的全部链接。
    """
    owner_id = current_user.id
    name = collection_in.name if collection_in else None
    collection = await engine.ensure_and_sync(owner_id, name)
    return {"collection": collection}


@router.get("", response_model=SharedCollectionEnvelope)
async def get_shared_collection(
    share_id: Optional[str] = Query(None, alias="shareId"),
    resolver: ShareResolver = Depends(get_share_resolver),
):
    """通过 share_id 公开读取集合（无需认证）"""
    if not share_id:
        raise ValidationError("Share ID required")

    collection = await resolver.get_by_share_id(share_id)
    return {"collection": collection}
