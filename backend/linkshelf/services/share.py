"""公开分享读取（无需登录，凭 share_id 访问）"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Link, Collection, CollectionLink
from ..schemas.collection import SharedCollectionResponse
from ..schemas.link import LinkResponse
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)


def is_valid_link(link) -> bool:
    """关联行必须指向存在且带 id 和 url 的链接"""
    return link is not None and bool(link.id) and bool(link.url)


class ShareResolver:
    """根据 share_id 读取集合及其当前链接"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_share_id(self, share_id: str) -> SharedCollectionResponse:
        result = await self.db.execute(select(Collection).where(Collection.share_id == share_id))
        collection = result.scalar_one_or_none()
        if collection is None:
            raise NotFoundError("Collection not found")

        # 外连接：关联行指向已删除的链接时 link 为 None，下面统一过滤
        rows = await self.db.execute(
            select(CollectionLink.link_id, Link)
            .outerjoin(Link, Link.id == CollectionLink.link_id)
            .where(CollectionLink.collection_id == collection.id)
            .order_by(Link.created_at.desc())
        )

        links = []
        dropped = 0
        for link_id, link in rows.all():
            if is_valid_link(link):
                links.append(LinkResponse.model_validate(link))
            else:
                dropped += 1

        if dropped:
            logger.warning(f"[Share] 集合 {collection.id} 过滤掉 {dropped} 条无效关联")

        return SharedCollectionResponse(
            id=collection.id,
            share_id=collection.share_id,
            name=collection.name,
            created_at=collection.created_at,
            links=links,
        )
