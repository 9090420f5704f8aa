"""网页元数据 Schema"""
from pydantic import BaseModel, Field
from typing import Optional


class UrlMetaRequest(BaseModel):
    """元数据抓取请求"""
    url: Optional[str] = None


class LinkMetadata(BaseModel):
    """解析后的链接元数据，可直接作为 POST /links 的请求体"""
    url: str
    title: str
    description: str = ""
    favicon: str = ""
    site_name: str = Field(..., alias="siteName")
    category: str

    class Config:
        populate_by_name = True
