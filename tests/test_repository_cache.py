"""Tests for the repository document cache."""

import asyncio

import httpx
import pytest

from mcp_blockchain_metadata.core.errors import UpstreamError, UpstreamTimeoutError
from mcp_blockchain_metadata.sources.repository import REPOSITORY_CACHE_TTL, RepositoryCache

pytestmark = pytest.mark.anyio("asyncio")

URL = "https://repo.test/v1/repository"

DOCUMENT = {
    "lastUpdated": "2025-01-01T00:00:00Z",
    "version": "1",
    "miniAppEndpoints": [],
    "templates": [
        {
            "baseUrl": "https://templates.test",
            "categories": [{"id": "swap", "name": "Swap", "templates": []}],
        }
    ],
}


class CountingHandler:
    """Serves a document and counts requests."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


async def test_fresh_document_is_served_without_io(make_fetcher, clock):
    handler = CountingHandler(httpx.Response(200, json=DOCUMENT))
    cache = RepositoryCache(make_fetcher(handler), URL, clock=clock)

    first = await cache.get_repository()
    clock.advance(REPOSITORY_CACHE_TTL - 1)
    second = await cache.get_repository()

    assert first is second
    assert handler.calls == 1
    assert cache.expires_at == 1000.0 + REPOSITORY_CACHE_TTL


async def test_stale_document_is_refreshed(make_fetcher, clock):
    updated = {**DOCUMENT, "version": "2"}
    handler = CountingHandler(httpx.Response(200, json=DOCUMENT), httpx.Response(200, json=updated))
    cache = RepositoryCache(make_fetcher(handler), URL, ttl=60, clock=clock)

    assert (await cache.get_repository()).version == "1"
    clock.advance(60)
    assert (await cache.get_repository()).version == "2"
    assert handler.calls == 2


async def test_failed_refresh_raises_and_never_serves_stale(make_fetcher, clock):
    handler = CountingHandler(httpx.Response(200, json=DOCUMENT), httpx.Response(503))
    cache = RepositoryCache(make_fetcher(handler), URL, ttl=60, clock=clock)

    await cache.get_repository()
    clock.advance(61)

    with pytest.raises(UpstreamError) as exc_info:
        await cache.get_repository()

    assert exc_info.value.message == "Failed to fetch repository data: HTTP 503: Service Unavailable"
    assert exc_info.value.status_code == 503


async def test_invalid_document_raises(make_fetcher, clock):
    handler = CountingHandler(httpx.Response(200, json={"miniAppEndpoints": [{"host": 1}]}))
    cache = RepositoryCache(make_fetcher(handler), URL, clock=clock)

    with pytest.raises(UpstreamError, match="Failed to fetch repository data: invalid repository document"):
        await cache.get_repository()

    assert cache.expires_at is None


async def test_timeout_keeps_its_type(make_fetcher, clock):
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json=DOCUMENT)

    cache = RepositoryCache(make_fetcher(slow), URL, timeout=0.05, clock=clock)

    with pytest.raises(UpstreamTimeoutError, match="Failed to fetch repository data: Timeout"):
        await cache.get_repository()


async def test_concurrent_misses_share_one_fetch(make_fetcher, clock):
    calls = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return httpx.Response(200, json=DOCUMENT)

    cache = RepositoryCache(make_fetcher(handler), URL, clock=clock)

    results = await asyncio.gather(*(cache.get_repository() for _ in range(10)))

    assert calls == 1
    assert all(result is results[0] for result in results)


async def test_get_templates_and_invalidate(make_fetcher, clock):
    handler = CountingHandler(httpx.Response(200, json=DOCUMENT))
    cache = RepositoryCache(make_fetcher(handler), URL, clock=clock)

    templates = await cache.get_templates()
    assert templates[0].base_url == "https://templates.test"

    cache.invalidate()
    await cache.get_templates()
    assert handler.calls == 2


async def test_unread_sections_are_not_validated(make_fetcher, clock):
    document = {
        **DOCUMENT,
        "miniAppEndpoints": [
            {
                "host": "swap.example.com",
                "state": "trusted",
                "category": "defi",
                "protocol": "https",
                "endpoint": "/api/swap",
            }
        ],
        "maliciousDomains": [{"reportedAt": "2025"}, "phish.example"],
        "integratorDomains": [{"state": "unknown"}],
    }
    cache = RepositoryCache(make_fetcher(CountingHandler(httpx.Response(200, json=document))), URL, clock=clock)

    repository = await cache.get_repository()

    assert repository.mini_app_endpoints[0].host == "swap.example.com"
    assert repository.malicious_domains == [{"reportedAt": "2025"}, "phish.example"]
