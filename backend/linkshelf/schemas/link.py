"""链接相关 Schema"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class LinkCreate(BaseModel):
    """创建链接（通常由 /fetch-meta 的结果直接提交）"""
    url: Optional[str] = Field(None, max_length=2000)
    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    favicon: Optional[str] = Field(None, max_length=2000)
    site_name: Optional[str] = Field(None, alias="siteName", max_length=255)
    category: Optional[str] = None

    class Config:
        populate_by_name = True


class LinkResponse(BaseModel):
    """链接响应"""
    id: str
    url: str
    title: str
    description: str = ""
    favicon: str = ""
    site_name: str = Field("", serialization_alias="siteName")
    category: str
    created_at: datetime = Field(serialization_alias="createdAt")

    class Config:
        from_attributes = True


class LinkEnvelope(BaseModel):
    link: LinkResponse


class LinkListResponse(BaseModel):
    links: List[LinkResponse]


class MessageResponse(BaseModel):
    message: str
