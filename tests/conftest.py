"""Pytest configuration for mcp-blockchain-metadata tests."""

from collections.abc import Callable

import httpx
import pytest

from mcp_blockchain_metadata.config import GatewaySettings
from mcp_blockchain_metadata.server.gateway import Gateway
from mcp_blockchain_metadata.sources.fetcher import RemoteFetcher

REPOSITORY_URL = "https://repo.test/v1/repository"
FALLBACK_URL = "https://fallback.test/template"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(
        _env_file=None,
        environment="test",
        auth_token=None,
        repository_url=REPOSITORY_URL,
        template_fallback_url=FALLBACK_URL,
        template_timeout_seconds=1.0,
    )


@pytest.fixture
def make_fetcher() -> Callable[..., RemoteFetcher]:
    """Build a fetcher whose HTTP client answers through ``handler``."""

    def _make(handler: Callable, default_timeout: float = 5.0) -> RemoteFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return RemoteFetcher(client, default_timeout=default_timeout)

    return _make


REPOSITORY_DOCUMENT = {
    "lastUpdated": "2025-01-01T00:00:00Z",
    "version": "1",
    "miniAppEndpoints": [
        {
            "host": "swap.example.com",
            "state": "trusted",
            "category": "defi",
            "verifiedAt": "2025-01-01",
            "protocol": "https",
            "endpoint": "/api/swap",
        }
    ],
    "templates": [],
}


def serve_repository(request: httpx.Request) -> httpx.Response:
    """Answer the repository URL with a small document and everything else with 404."""
    if str(request.url) == REPOSITORY_URL:
        return httpx.Response(200, json=REPOSITORY_DOCUMENT)
    return httpx.Response(404)


@pytest.fixture
def make_gateway(settings: GatewaySettings) -> Callable[..., Gateway]:
    """Build a gateway whose upstream fetches go through ``handler``."""

    def _make(handler: Callable = serve_repository, **overrides: object) -> Gateway:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return Gateway(settings.model_copy(update=overrides), client=client)

    return _make
