"""
链接元数据解析

两层结构：
- try_fetch(url) -> FetchResult：抓取并映射字段，所有异常都收进 FetchResult.error
- resolve(url) -> LinkMetadata：无条件转换为可用结果，失败时退化为只依赖 URL 的兜底记录

URL 的规范化、协议白名单和 SSRF 检查在 API 边界（normalize_url）完成，
这里假定传入的是已经规范化的地址。
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import settings
from ..schemas.meta import LinkMetadata
from ..utils.cache import cache_get, cache_set
from ..utils.http_client import safe_fetch, extract_meta_info, bare_hostname
from .categorizer import categorize
from .exceptions import UpstreamFetchError

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "meta"


@dataclass
class FetchResult:
    """抓取结果：metadata 和 error 二选一"""
    metadata: Optional[LinkMetadata] = None
    error: Optional[UpstreamFetchError] = None

    @property
    def ok(self) -> bool:
        return self.metadata is not None


def fallback_metadata(url: str) -> LinkMetadata:
    """只根据 URL 构造的兜底元数据，不会抛异常"""
    hostname = bare_hostname(url)
    return LinkMetadata(
        url=url,
        title=hostname,
        description="",
        favicon="",
        site_name=hostname,
        category=categorize(url, "").value,
    )


def build_metadata(url: str, meta: dict) -> LinkMetadata:
    """把抓取到的原始字段映射为 LinkMetadata，url 保持请求的规范化地址（不跟随重定向）"""
    site_name = meta.get("site_name") or bare_hostname(url)
    favicons = meta.get("favicons") or []
    images = meta.get("images") or []

    return LinkMetadata(
        url=url,
        title=meta.get("title") or meta.get("site_name") or "Untitled",
        description=meta.get("description") or "",
        favicon=(favicons[0] if favicons else "") or (images[0] if images else ""),
        site_name=site_name,
        category=categorize(url, site_name).value,
    )


class MetadataResolver:
    """网页元数据解析器"""

    def __init__(
        self,
        timeout: float = None,
        max_redirects: int = None,
        max_size: int = None,
        user_agent: str = None,
        check_dns: bool = True,
        use_cache: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.META_FETCH_TIMEOUT
        self.max_redirects = max_redirects if max_redirects is not None else settings.META_MAX_REDIRECTS
        self.max_size = max_size if max_size is not None else settings.META_MAX_RESPONSE_SIZE
        self.user_agent = user_agent or settings.META_USER_AGENT
        self.check_dns = check_dns
        self.use_cache = use_cache
        self.transport = transport

    async def try_fetch(self, url: str) -> FetchResult:
        """抓取并解析网页，任何失败都以 FetchResult.error 返回"""
        if self.use_cache:
            hit = cache_get(CACHE_NAMESPACE, url)
            if hit is not None:
                return FetchResult(metadata=hit)

        try:
            page = await safe_fetch(
                url,
                timeout=self.timeout,
                max_redirects=self.max_redirects,
                max_size=self.max_size,
                user_agent=self.user_agent,
                check_dns=self.check_dns,
                transport=self.transport,
            )
            html = page.text if "html" in page.content_type.lower() or not page.content_type else ""
            metadata = build_metadata(url, extract_meta_info(html, page.url))
        except UpstreamFetchError as e:
            return FetchResult(error=e)
        except Exception as e:
            # 网络错误、超时、SSRF 重定向、解析错误统一视为上游失败
            return FetchResult(error=UpstreamFetchError(f"{type(e).__name__}: {e}"))

        if self.use_cache:
            cache_set(CACHE_NAMESPACE, url, metadata)
        return FetchResult(metadata=metadata)

    async def resolve(self, url: str) -> LinkMetadata:
        """解析元数据，永远不向外抛出异常"""
        result = await self.try_fetch(url)
        if result.ok:
            return result.metadata

        logger.warning(f"[Meta] 抓取失败，使用兜底元数据: {url} - {result.error}")
        return fallback_metadata(url)
