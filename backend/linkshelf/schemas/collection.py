"""分享集合 Schema"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from .link import LinkResponse


class CollectionCreate(BaseModel):
    """请求分享链接"""
    name: Optional[str] = Field(None, max_length=255)


class CollectionResponse(BaseModel):
    """集合响应"""
    id: str
    share_id: str = Field(..., serialization_alias="shareId")
    name: str
    created_at: datetime = Field(..., serialization_alias="createdAt")

    class Config:
        from_attributes = True


class SharedCollectionResponse(CollectionResponse):
    """公开读取的集合（附带当前链接）"""
    links: List[LinkResponse] = []


class CollectionEnvelope(BaseModel):
    collection: CollectionResponse


class SharedCollectionEnvelope(BaseModel):
    collection: SharedCollectionResponse
