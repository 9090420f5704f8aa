"""
安全的 HTTP 客户端工具

提供抓取用户提交网页所需的安全防护：
- URL 规范化（缺少协议时补 https://）
- 协议限制（只允许 http/https）
- SSRF 防护（IP 字面量解析 + 网段判断，覆盖十进制/十六进制 IPv4 与 IPv4 映射 IPv6）
- 超时、重定向次数、响应大小限制，每一跳重定向都重新校验
- 基于 BeautifulSoup 的网页 meta 信息提取
"""

import asyncio
import ipaddress
import logging
import re
import socket
from dataclasses import dataclass
from typing import Optional, Dict, Any, List, Union
from urllib.parse import urlparse, urljoin

import httpx
from bs4 import BeautifulSoup

from ..services.exceptions import ValidationError, UpstreamFetchError

logger = logging.getLogger(__name__)


# ==================== 安全配置 ====================

# 禁止访问的内网 / 保留 IP 段
BLOCKED_IP_RANGES = [
    ipaddress.ip_network("0.0.0.0/8"),         # 当前网络
    ipaddress.ip_network("10.0.0.0/8"),        # 私有网络 A
    ipaddress.ip_network("100.64.0.0/10"),     # 运营商级 NAT
    ipaddress.ip_network("127.0.0.0/8"),       # localhost
    ipaddress.ip_network("169.254.0.0/16"),    # 链路本地（含云厂商元数据服务）
    ipaddress.ip_network("172.16.0.0/12"),     # 私有网络 B
    ipaddress.ip_network("192.0.0.0/24"),      # IETF 协议分配
    ipaddress.ip_network("192.168.0.0/16"),    # 私有网络 C
    ipaddress.ip_network("198.18.0.0/15"),     # 基准测试
    ipaddress.ip_network("224.0.0.0/4"),       # 组播
    ipaddress.ip_network("240.0.0.0/4"),       # 保留
    ipaddress.ip_network("::/128"),            # IPv6 未指定
    ipaddress.ip_network("::1/128"),           # IPv6 localhost
    ipaddress.ip_network("fc00::/7"),          # IPv6 私有
    ipaddress.ip_network("fe80::/10"),         # IPv6 链路本地
    ipaddress.ip_network("ff00::/8"),          # IPv6 组播
]

# 禁止访问的主机名
BLOCKED_HOSTNAMES = [
    "localhost",
    "localhost.localdomain",
    "0.0.0.0",
    "127.0.0.1",
    "::1",
    "metadata.google.internal",  # GCP 元数据服务
    "metadata.google.com",
    "169.254.169.254",           # AWS/云厂商元数据服务
]

# 允许的协议
ALLOWED_SCHEMES = ["http", "https"]

# inet_aton 接受的 IPv4 写法：十进制 / 八进制 / 十六进制，1~4 段
_IPV4_LOOSE_RE = re.compile(r"^(0x[0-9a-f]+|\d+)(\.(0x[0-9a-f]+|\d+)){0,3}\.?$", re.IGNORECASE)

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)

# 默认配置
DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_MAX_RESPONSE_SIZE = 2 * 1024 * 1024  # 2MB
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; LinkShelf/1.0)"

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


# ==================== 安全检查 ====================

class SSRFError(ValidationError):
    """SSRF 安全错误"""
    default_message = "Local and internal URLs are not allowed"


def parse_ip_literal(host: str) -> Optional[IPAddress]:
    """
    把主机名解析为 IP 字面量

    除了标准写法，也识别 inet_aton 支持的宽松 IPv4 写法
    （如 2130706433、0x7f.0.0.1、127.1），这些写法浏览器和 HTTP 库
    都会当作 IP 处理。不是 IP 字面量时返回 None。
    """
    host = host.strip("[]").rstrip(".")
    if not host:
        return None

    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass

    if _IPV4_LOOSE_RE.match(host):
        try:
            return ipaddress.IPv4Address(socket.inet_aton(host))
        except (OSError, ValueError):
            return None
    return None


def is_ip_blocked(ip: IPAddress) -> bool:
    """检查 IP 是否在禁止范围内"""
    if isinstance(ip, ipaddress.IPv6Address):
        # IPv4 映射 / 6to4 地址按内嵌的 IPv4 判断
        if ip.ipv4_mapped is not None:
            return is_ip_blocked(ip.ipv4_mapped)
        if ip.sixtofour is not None:
            return is_ip_blocked(ip.sixtofour)

    for network in BLOCKED_IP_RANGES:
        if ip.version == network.version and ip in network:
            return True
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified


def is_hostname_blocked(hostname: str) -> bool:
    """检查主机名是否为内部地址（不做 DNS 解析）"""
    hostname = hostname.lower().rstrip(".")

    if hostname in BLOCKED_HOSTNAMES:
        return True

    # evil.localhost 之类的子域名
    for blocked in BLOCKED_HOSTNAMES:
        if hostname.endswith("." + blocked):
            return True

    ip = parse_ip_literal(hostname)
    return ip is not None and is_ip_blocked(ip)


def normalize_url(raw: Any) -> str:
    """
    规范化用户输入的 URL

    缺少协议时补 https://，并做协议白名单和 SSRF 检查。
    这是 API 边界上的校验，失败时抛出 ValidationError。
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("Valid URL is required")

    url = raw.strip()
    if not _SCHEME_RE.match(url):
        url = "https://" + url

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
        parsed.port  # 非法端口在这里抛 ValueError
    except ValueError:
        raise ValidationError("Invalid URL format")

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise ValidationError("Only HTTP and HTTPS URLs are allowed")

    if not hostname or any(c.isspace() for c in url):
        raise ValidationError("Invalid URL format")

    validate_url(url)
    return url


def validate_url(url: str) -> str:
    """
    验证 URL 安全性（协议 + 主机名），不做网络访问

    Raises:
        SSRFError: 如果 URL 不安全
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        raise SSRFError("Invalid URL format")

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise SSRFError("Only HTTP and HTTPS URLs are allowed")

    if not hostname:
        raise SSRFError("Invalid URL format")

    if is_hostname_blocked(hostname):
        raise SSRFError()

    return url


async def ensure_resolves_public(hostname: str) -> None:
    """DNS 解析后检查所有地址，防止公网域名指向内网"""
    loop = asyncio.get_running_loop()
    try:
        addr_info = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    except socket.gaierror:
        raise UpstreamFetchError(f"Cannot resolve host: {hostname}")

    for family, type_, proto, canonname, sockaddr in addr_info:
        ip = parse_ip_literal(sockaddr[0])
        if ip is not None and is_ip_blocked(ip):
            raise SSRFError(f"Host {hostname} resolves to an internal address")


# ==================== HTTP 客户端 ====================

@dataclass
class FetchedPage:
    """抓取结果"""
    url: str  # 重定向之后的最终地址
    status_code: int
    content_type: str
    text: str


def _decode_body(content: bytes, content_type: str) -> str:
    """尽量正确地解码网页内容"""
    encoding = None
    match = re.search(r"charset=([\w\-]+)", content_type, re.IGNORECASE)
    if match:
        encoding = match.group(1)
    else:
        # 从 HTML 头部的 meta 标签检测编码
        charset_match = re.search(rb'charset=["\']?([^"\'>\s;]+)', content[:1024])
        if charset_match:
            encoding = charset_match.group(1).decode("ascii", errors="ignore")

    try:
        return content.decode(encoding or "utf-8", errors="ignore")
    except LookupError:
        return content.decode("utf-8", errors="ignore")


async def safe_fetch(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
    max_size: int = DEFAULT_MAX_RESPONSE_SIZE,
    user_agent: str = DEFAULT_USER_AGENT,
    check_dns: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FetchedPage:
    """
    安全的 GET 请求

    手动跟随重定向，每一跳都重新做 SSRF 检查；响应体超过 max_size 时截断。

    Raises:
        SSRFError: 如果某一跳 URL 不安全
        UpstreamFetchError: 重定向过多 / 状态码非 2xx
        httpx.HTTPError: 网络错误、超时
    """
    request_headers = {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }
    if headers:
        request_headers.update(headers)

    current = url
    async with httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=False,
        transport=transport,
    ) as client:
        for _ in range(max_redirects + 1):
            validate_url(current)
            if check_dns:
                await ensure_resolves_public(urlparse(current).hostname)

            async with client.stream("GET", current, headers=request_headers) as response:
                if response.is_redirect:
                    current = urljoin(current, response.headers["location"])
                    continue

                if not response.is_success:
                    raise UpstreamFetchError(f"Upstream returned HTTP {response.status_code}")

                content_type = response.headers.get("content-type", "")
                chunks: List[bytes] = []
                received = 0
                async for chunk in response.aiter_bytes():
                    chunks.append(chunk)
                    received += len(chunk)
                    if received >= max_size:
                        break
                body = b"".join(chunks)[:max_size]

                return FetchedPage(
                    url=str(response.url),
                    status_code=response.status_code,
                    content_type=content_type,
                    text=_decode_body(body, content_type),
                )

    raise UpstreamFetchError(f"Too many redirects (max {max_redirects})")


# ==================== 网页信息提取 ====================

def _meta_content(soup: BeautifulSoup, *keys: str) -> str:
    """按顺序查找 <meta property|name=key content=...>，返回第一个非空值"""
    for key in keys:
        tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        if tag and tag.get("content") and tag["content"].strip():
            return tag["content"].strip()
    return ""


def _absolute(href: str, base_url: str) -> str:
    href = href.strip()
    if href.startswith("//"):
        return "https:" + href
    return urljoin(base_url, href)


def extract_meta_info(html: str, base_url: str) -> Dict[str, Any]:
    """
    从 HTML 中提取 meta 信息

    Args:
        html: HTML 内容
        base_url: 页面地址，用于把相对链接转为绝对地址

    Returns:
        {"title", "description", "site_name", "images", "favicons"}
    """
    meta_info: Dict[str, Any] = {
        "title": "",
        "description": "",
        "site_name": "",
        "images": [],
        "favicons": [],
    }

    if not html:
        return meta_info

    soup = BeautifulSoup(html, "html.parser")

    # og:title 优先，其次 <title>
    meta_info["title"] = _meta_content(soup, "og:title", "twitter:title")
    if not meta_info["title"] and soup.title and soup.title.string:
        meta_info["title"] = soup.title.string.strip()

    meta_info["description"] = _meta_content(
        soup, "og:description", "description", "twitter:description"
    )
    meta_info["site_name"] = _meta_content(soup, "og:site_name", "application-name")

    for key in ("og:image", "og:image:url", "twitter:image"):
        for tag in soup.find_all("meta", attrs={"property": key}) + soup.find_all("meta", attrs={"name": key}):
            content = (tag.get("content") or "").strip()
            if content:
                image = _absolute(content, base_url)
                if image not in meta_info["images"]:
                    meta_info["images"].append(image)

    # favicon：rel 中包含 icon 的 <link>（icon / shortcut icon / apple-touch-icon）
    for tag in soup.find_all("link", href=True):
        rel = tag.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if any("icon" in r.lower() for r in rel):
            icon = _absolute(tag["href"], base_url)
            if icon not in meta_info["favicons"]:
                meta_info["favicons"].append(icon)

    # 如果没有找到 favicon，使用默认路径
    if not meta_info["favicons"]:
        parsed = urlparse(base_url)
        meta_info["favicons"].append(f"{parsed.scheme}://{parsed.netloc}/favicon.ico")

    return meta_info


def bare_hostname(url: str) -> str:
    """返回去掉 www. 前缀的主机名，无法解析时返回 Unknown Site"""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        hostname = None
    if not hostname:
        return "Unknown Site"
    return hostname[4:] if hostname.startswith("www.") else hostname
