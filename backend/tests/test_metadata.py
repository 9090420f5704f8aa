import asyncio
import socket

import httpx
import pytest

from linkshelf.services.categorizer import categorize
from linkshelf.services.metadata import MetadataResolver, fallback_metadata, build_metadata


def resolver_for(handler, **kwargs) -> MetadataResolver:
    return MetadataResolver(check_dns=False, transport=httpx.MockTransport(handler), **kwargs)


async def test_resolve_maps_page_fields():
    def handler(request):
        return httpx.Response(200, html="""
            <title>Never Gonna Give You Up</title>
            <meta property="og:site_name" content="YouTube">
            <meta name="description" content="Official video">
            <link rel="icon" href="/favicon-32.png">
        """)

    meta = await resolver_for(handler).resolve("https://www.youtube.com/watch?v=x")
    assert meta.url == "https://www.youtube.com/watch?v=x"
    assert meta.title == "Never Gonna Give You Up"
    assert meta.description == "Official video"
    assert meta.favicon == "https://www.youtube.com/favicon-32.png"
    assert meta.site_name == "YouTube"
    assert meta.category == "Video"


async def test_resolve_keeps_requested_url_after_redirect():
    def handler(request):
        if request.url.host == "youtube.com":
            return httpx.Response(301, headers={"location": "https://www.youtube.com/watch?v=x"})
        return httpx.Response(200, html='<title>Video</title><link rel="icon" href="/yt.ico">')

    meta = await resolver_for(handler).resolve("https://youtube.com/watch?v=x")
    assert meta.url == "https://youtube.com/watch?v=x"
    assert meta.title == "Video"
    assert meta.category == "Video"
    # 相对图标地址按最终页面解析
    assert meta.favicon == "https://www.youtube.com/yt.ico"


async def test_redirect_to_login_page_does_not_replace_url():
    def handler(request):
        if request.url.host == "example.org":
            return httpx.Response(302, headers={"location": "https://login.example.net/signin?next=/doc"})
        return httpx.Response(200, html="<title>Sign in</title>")

    meta = await resolver_for(handler).resolve("https://example.org/blog/doc")
    assert meta.url == "https://example.org/blog/doc"
    assert meta.site_name == "example.org"
    assert meta.category == "Article"


def test_build_metadata_fallback_chain():
    meta = build_metadata("https://www.example.com/x", {
        "title": "", "description": "", "site_name": "", "images": ["https://img/1.png"], "favicons": [],
    })
    assert meta.title == "Untitled"
    assert meta.site_name == "example.com"
    assert meta.favicon == "https://img/1.png"

    meta = build_metadata("https://example.com/x", {"title": "", "site_name": "Example"})
    assert meta.title == "Example"
    assert meta.favicon == ""


@pytest.mark.parametrize("error", [
    httpx.ConnectError("unreachable"),
    httpx.ReadTimeout("slow"),
])
async def test_resolve_falls_back_on_network_errors(error):
    def handler(request):
        raise error

    url = "https://www.unreachable-host.example/recipe/soup"
    meta = await resolver_for(handler).resolve(url)
    assert meta.url == url
    assert meta.title == "unreachable-host.example"
    assert meta.site_name == "unreachable-host.example"
    assert meta.description == ""
    assert meta.favicon == ""
    assert meta.category == categorize(url, "").value == "Recipe"


async def test_resolve_falls_back_on_error_status():
    meta = await resolver_for(lambda request: httpx.Response(500)).resolve("https://example.com/")
    assert meta == fallback_metadata("https://example.com/")


async def test_resolve_falls_back_when_redirected_to_private_network():
    def handler(request):
        return httpx.Response(302, headers={"location": "http://10.0.0.1/"})

    meta = await resolver_for(handler).resolve("https://example.com/")
    assert meta.title == "example.com"


async def test_try_fetch_reports_error():
    def handler(request):
        raise httpx.ConnectError("nope")

    result = await resolver_for(handler).try_fetch("https://example.com/")
    assert not result.ok
    assert result.metadata is None
    assert "ConnectError" in result.error.message


async def test_non_html_response_still_resolves():
    def handler(request):
        return httpx.Response(200, content=b"%PDF-1.4", headers={"content-type": "application/pdf"})

    meta = await resolver_for(handler).resolve("https://www.example.com/file.pdf")
    assert meta.title == "Untitled"
    assert meta.site_name == "example.com"


async def test_successful_fetch_is_cached():
    calls = []

    def handler(request):
        calls.append(request.url)
        return httpx.Response(200, html="<title>Cached</title>")

    resolver = resolver_for(handler)
    first = await resolver.resolve("https://example.com/")
    second = await resolver.resolve("https://example.com/")
    assert first == second
    assert len(calls) == 1


async def test_fallback_is_not_cached():
    calls = []

    def handler(request):
        calls.append(request.url)
        raise httpx.ConnectError("down")

    resolver = resolver_for(handler)
    await resolver.resolve("https://example.com/")
    await resolver.resolve("https://example.com/")
    assert len(calls) == 2


def test_fallback_metadata_never_raises():
    meta = fallback_metadata("https://www.twitter.com/someone")
    assert meta.title == meta.site_name == "twitter.com"
    assert meta.category == "Social"


async def test_host_resolving_to_private_address_falls_back(monkeypatch):
    async def getaddrinfo(host, port, *args, **kwargs):
        return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.5", 0))]

    monkeypatch.setattr(asyncio.get_running_loop(), "getaddrinfo", getaddrinfo)

    def handler(request):
        raise AssertionError("internal address must not be fetched")

    url = "https://rebind.example/page"
    resolver = MetadataResolver(transport=httpx.MockTransport(handler))
    assert resolver.check_dns
    assert await resolver.resolve(url) == fallback_metadata(url)
