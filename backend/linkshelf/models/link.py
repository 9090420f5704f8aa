"""链接模型"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from ..database import Base


class Link(Base):
    """链接表（url 不做唯一约束，允许重复收藏）"""
    __tablename__ = "links"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    url = Column(String(2000), nullable=False)
    title = Column(String(500), nullable=False, default="Untitled")
    description = Column(Text, nullable=False, default="")
    favicon = Column(String(2000), nullable=False, default="")
    site_name = Column(String(255), nullable=False, default="")
    category = Column(String(20), nullable=False, default="General")
    created_at = Column(DateTime, default=datetime.utcnow)

    # 关系
    user = relationship("User", back_populates="links")
    memberships = relationship("CollectionLink", back_populates="link", passive_deletes=True)

    __table_args__ = (
        Index("ix_links_user_created", "user_id", "created_at"),
    )
