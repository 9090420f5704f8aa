"""链接路由"""
from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from ...schemas import LinkCreate, LinkEnvelope, LinkListResponse, MessageResponse
from ...services.categorizer import Category
from ...services.exceptions import ValidationError
from ...services.link_store import LinkStore
from ...api.deps import get_link_store

router = APIRouter()


@router.get("", response_model=LinkListResponse)
async def list_links(
    q: Optional[str] = Query(None, description="标题 / 描述 / URL / 站点名的子串"),
    category: Optional[Category] = Query(None),
    store: LinkStore = Depends(get_link_store),
):
    """获取当前用户的链接（最新在前）"""
    links = await store.list(q=q, category=category.value if category else None)
    return {"links": links}


@router.post("", response_model=LinkEnvelope, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_in: LinkCreate,
    store: LinkStore = Depends(get_link_store),
):
    """保存链接（字段通常来自 /fetch-meta）"""
    link = await store.create(link_in)
    return {"link": link}


@router.delete("", response_model=MessageResponse)
async def delete_link(
    id: Optional[str] = Query(None),
    store: LinkStore = Depends(get_link_store),
):
    """删除链接；不属于当前用户的链接静默忽略，不泄露其是否存在"""
    if not id:
        raise ValidationError("Link ID is required")

    await store.delete(id)
    return {"message": "Link deleted successfully"}
