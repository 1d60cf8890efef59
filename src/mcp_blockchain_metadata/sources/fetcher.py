"""Bounded-timeout HTTP fetches of remote JSON documents."""

import asyncio
import logging
from typing import Any

import httpx

from mcp_blockchain_metadata.core.errors import UpstreamError, UpstreamTimeoutError

logger = logging.getLogger(__name__)


class RemoteFetcher:
    """
    Fetches JSON documents over HTTP with a per-request timeout.

    Each call carries its own deadline; a timeout cancels only that request.

    Parameters
    ----------
    client : httpx.AsyncClient | None
        Shared HTTP client. A private client is created (and owned) if None.
    default_timeout : float
        Timeout in seconds used when a call does not pass one

    """

    def __init__(self, client: httpx.AsyncClient | None = None, default_timeout: float = 10.0) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )
        self.default_timeout = default_timeout

    async def get_json(self, url: str, *, timeout: float | None = None, description: str = "document") -> Any:
        """
        GET a URL and decode its JSON body.

        Parameters
        ----------
        url : str
            Document URL
        timeout : float | None
            Timeout in seconds for the whole request
        description : str
            What is being fetched, used in error messages

        Returns
        -------
        Any
            Decoded JSON body

        Raises
        ------
        UpstreamTimeoutError
            If the request does not complete in time
        UpstreamError
            On transport failures, non-2xx responses, or a non-JSON body

        """
        timeout = timeout or self.default_timeout
        logger.debug("Fetching %s from %s (timeout=%ss)", description, url, timeout)

        try:
            async with asyncio.timeout(timeout):
                response = await self.client.get(url, timeout=timeout)
        except (TimeoutError, httpx.TimeoutException) as e:
            msg = f"Timeout after {timeout:g}s fetching {description}"
            raise UpstreamTimeoutError(msg, hint="The upstream source is slow; retry later.") from e
        except httpx.HTTPError as e:
            msg = f"Request for {description} failed: {e}"
            raise UpstreamError(msg) from e

        if not response.is_success:
            msg = f"HTTP {response.status_code}: {response.reason_phrase}"
            raise UpstreamError(msg, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            msg = f"Response for {description} is not valid JSON"
            raise UpstreamError(msg, status_code=response.status_code) from e

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "RemoteFetcher":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Async context manager exit."""
        await self.aclose()
