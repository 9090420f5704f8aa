"""网页元数据路由"""
from fastapi import APIRouter, Depends

from ...schemas import UrlMetaRequest, LinkMetadata
from ...services.metadata import MetadataResolver
from ...utils.http_client import normalize_url
from ...api.deps import get_metadata_resolver

router = APIRouter()


@router.post("/fetch-meta", response_model=LinkMetadata)
async def fetch_meta(
    request: UrlMetaRequest,
    resolver: MetadataResolver = Depends(get_metadata_resolver),
):
    """
    获取 URL 的元数据（标题、描述、图标、站点名、分类）- 带 SSRF 防护

    - URL 缺失、格式错误、非 http/https、指向内网时返回 400
    - 网页抓取失败不会报错，返回只依赖 URL 的兜底元数据
    """
    url = normalize_url(request.url)
    return await resolver.resolve(url)
