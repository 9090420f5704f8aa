"""分享集合模型"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from ..database import Base


class Collection(Base):
    """分享集合（每个用户最多一个）"""
    __tablename__ = "collections"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    share_id = Column(String(32), unique=True, index=True, nullable=False)  # 公开短 token，创建后不可变
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # 关系
    user = relationship("User", back_populates="collection")
    memberships = relationship("CollectionLink", back_populates="collection", passive_deletes=True)


class CollectionLink(Base):
    """集合-链接关联表（派生数据，每次同步整体重建）"""
    __tablename__ = "collection_links"

    collection_id = Column(String(36), ForeignKey("collections.id", ondelete="CASCADE"), primary_key=True)
    link_id = Column(String(36), ForeignKey("links.id", ondelete="CASCADE"), primary_key=True, index=True)

    # 关系
    collection = relationship("Collection", back_populates="memberships")
    link = relationship("Link", back_populates="memberships")
