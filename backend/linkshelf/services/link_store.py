"""链接存储（按用户隔离）"""
import logging
from typing import List, Optional

from sqlalchemy import select, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Link, CollectionLink
from ..schemas.link import LinkCreate
from .categorizer import Category, CATEGORY_VALUES
from .exceptions import ValidationError

logger = logging.getLogger(__name__)


class LinkStore:
    """
    绑定到已验证用户的链接存储

    每个请求构造一个实例，所有查询都带 user_id 条件；
    操作其他用户的链接与操作不存在的链接表现一致。
    """

    def __init__(self, db: AsyncSession, owner_id: str):
        self.db = db
        self.owner_id = owner_id

    async def list(self, q: Optional[str] = None, category: Optional[str] = None) -> List[Link]:
        """获取链接列表（最新在前），可按关键字子串和分类过滤"""
        query = select(Link).where(Link.user_id == self.owner_id)

        if category:
            query = query.where(Link.category == category)

        if q and q.strip():
            pattern = f"%{q.strip()}%"
            query = query.where(
                or_(
                    Link.title.ilike(pattern),
                    Link.description.ilike(pattern),
                    Link.url.ilike(pattern),
                    Link.site_name.ilike(pattern),
                )
            )

        query = query.order_by(Link.created_at.desc(), Link.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get(self, link_id: str) -> Optional[Link]:
        """获取单个链接，不属于当前用户时返回 None"""
        result = await self.db.execute(
            select(Link).where(Link.id == link_id, Link.user_id == self.owner_id)
        )
        return result.scalar_one_or_none()

    async def ids(self) -> List[str]:
        """当前用户所有链接的 id"""
        result = await self.db.execute(select(Link.id).where(Link.user_id == self.owner_id))
        return list(result.scalars().all())

    async def create(self, data: LinkCreate) -> Link:
        """创建链接，缺省字段使用默认值"""
        url = (data.url or "").strip()
        if not url:
            raise ValidationError("URL is required")

        category = data.category or Category.GENERAL.value
        if category not in CATEGORY_VALUES:
            raise ValidationError(f"Invalid category: {category}")

        link = Link(
            user_id=self.owner_id,
            url=url,
            title=data.title or "Untitled",
            description=data.description or "",
            favicon=data.favicon or "",
            site_name=data.site_name or "",
            category=category,
        )
        self.db.add(link)
        await self.db.flush()
        await self.db.refresh(link)

        logger.info(f"[Links] 用户 {self.owner_id} 新增链接 {link.id} ({link.category})")
        return link

    async def delete(self, link_id: str) -> bool:
        """
        删除链接及其集合关联

        Returns:
            True 表示已删除；False 表示链接不存在或不属于当前用户
        """
        link = await self.get(link_id)
        if link is None:
            return False

        await self.db.execute(delete(CollectionLink).where(CollectionLink.link_id == link.id))
        await self.db.delete(link)
        await self.db.flush()

        logger.info(f"[Links] 用户 {self.owner_id} 删除链接 {link_id}")
        return True
