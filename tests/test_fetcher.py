"""Tests for the remote JSON fetcher."""

import asyncio

import httpx
import pytest

from mcp_blockchain_metadata.core.errors import ErrorCode, UpstreamError, UpstreamTimeoutError

pytestmark = pytest.mark.anyio("asyncio")


async def test_get_json_returns_decoded_body(make_fetcher):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    fetcher = make_fetcher(handler)

    assert await fetcher.get_json("https://upstream.test/doc.json") == {"ok": True}
    assert str(seen[0].url) == "https://upstream.test/doc.json"


async def test_non_success_status_raises_with_status(make_fetcher):
    fetcher = make_fetcher(lambda request: httpx.Response(404))

    with pytest.raises(UpstreamError) as exc_info:
        await fetcher.get_json("https://upstream.test/missing")

    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "HTTP 404: Not Found"
    assert exc_info.value.to_error_data()["status"] == 404


async def test_invalid_json_raises(make_fetcher):
    fetcher = make_fetcher(lambda request: httpx.Response(200, content=b"<html>"))

    with pytest.raises(UpstreamError, match="not valid JSON"):
        await fetcher.get_json("https://upstream.test/doc", description="repository")


async def test_transport_error_raises(make_fetcher):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = make_fetcher(handler)

    with pytest.raises(UpstreamError) as exc_info:
        await fetcher.get_json("https://upstream.test/doc")

    assert not isinstance(exc_info.value, UpstreamTimeoutError)
    assert "connection refused" in exc_info.value.message


async def test_slow_response_times_out(make_fetcher):
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json={})

    fetcher = make_fetcher(handler)

    with pytest.raises(UpstreamTimeoutError) as exc_info:
        await fetcher.get_json("https://upstream.test/slow", timeout=0.05, description="token list")

    assert exc_info.value.code == ErrorCode.UPSTREAM_TIMEOUT
    assert exc_info.value.message == "Timeout after 0.05s fetching token list"


async def test_httpx_timeout_is_reported_as_timeout(make_fetcher):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    fetcher = make_fetcher(handler)

    with pytest.raises(UpstreamTimeoutError):
        await fetcher.get_json("https://upstream.test/doc")


async def test_shared_client_is_not_closed(make_fetcher):
    fetcher = make_fetcher(lambda request: httpx.Response(200, json=[]))

    async with fetcher:
        await fetcher.get_json("https://upstream.test/doc")

    assert not fetcher.client.is_closed
