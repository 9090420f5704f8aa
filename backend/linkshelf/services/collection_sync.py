"""
分享集合同步

每个用户最多一个集合（collections.user_id 唯一约束），首次请求分享时创建，
之后每次请求都复用同一个集合（名称和 share_id 不再修改），并把集合成员
整体重建为用户当前的全部链接。

并发首次创建时，唯一约束冲突按"读取已存在的集合继续"处理；
share_id 冲突则重新生成，最多尝试 SHARE_ID_MAX_ATTEMPTS 次。
"""
import logging
import uuid
from typing import Optional

from sqlalchemy import select, delete, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models import Collection, CollectionLink
from .exceptions import StoreError
from .link_store import LinkStore

logger = logging.getLogger(__name__)


def generate_share_id() -> str:
    """两个 uuid4 的第一段拼接，16 位十六进制"""
    return str(uuid.uuid4()).split("-")[0] + str(uuid.uuid4()).split("-")[0]


class CollectionSyncEngine:
    """集合同步引擎（受信任的服务端操作，不绑定请求身份）"""

    def __init__(self, db: AsyncSession, max_attempts: int = None):
        self.db = db
        self.max_attempts = max_attempts if max_attempts is not None else settings.SHARE_ID_MAX_ATTEMPTS

    async def find_by_owner(self, owner_id: str) -> Optional[Collection]:
        result = await self.db.execute(
            select(Collection).where(Collection.user_id == owner_id).limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, owner_id: str, name: str) -> Collection:
        """
        创建集合

        唯一约束冲突时回滚并重新查询：如果该用户已经有集合（并发请求抢先创建），
        直接返回它；否则视为 share_id 冲突，换一个 share_id 重试。
        """
        for attempt in range(1, self.max_attempts + 1):
            collection = Collection(user_id=owner_id, share_id=generate_share_id(), name=name)
            self.db.add(collection)
            try:
                await self.db.flush()
            except IntegrityError:
                await self.db.rollback()
                existing = await self.find_by_owner(owner_id)
                if existing is not None:
                    logger.info(f"[Sync] 用户 {owner_id} 的集合已被并发创建，复用 {existing.id}")
                    return existing
                logger.warning(f"[Sync] share_id 冲突，重试 ({attempt}/{self.max_attempts})")
                continue

            await self.db.refresh(collection)
            logger.info(f"[Sync] 用户 {owner_id} 创建集合 {collection.id} share_id={collection.share_id}")
            return collection

        raise StoreError("Failed to create collection")

    async def resync(self, collection_id: str, owner_id: str) -> int:
        """
        整体重建集合成员：读取当前链接 -> 删除全部旧关联 -> 插入当前链接

        幂等且自愈，无论之前状态如何，结束后成员都恰好等于用户当前的链接集合。

        Returns:
            同步后的成员数量
        """
        link_ids = await LinkStore(self.db, owner_id).ids()

        await self.db.execute(
            delete(CollectionLink).where(CollectionLink.collection_id == collection_id)
        )

        if link_ids:
            await self.db.execute(
                insert(CollectionLink),
                [{"collection_id": collection_id, "link_id": link_id} for link_id in link_ids],
            )

        await self.db.flush()
        logger.info(f"[Sync] 集合 {collection_id} 同步完成，共 {len(link_ids)} 个链接")
        return len(link_ids)

    async def ensure_and_sync(self, owner_id: str, requested_name: Optional[str] = None) -> Collection:
        """获取或创建用户的集合，并同步成员"""
        collection = await self.find_by_owner(owner_id)
        if collection is None:
            name = (requested_name or "").strip() or settings.DEFAULT_COLLECTION_NAME
            collection = await self.create(owner_id, name)

        await self.resync(collection.id, owner_id)
        return collection
