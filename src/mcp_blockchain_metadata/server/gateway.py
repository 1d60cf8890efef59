"""Composition root wiring fetcher, caches, sessions and tools."""

import logging
import uuid

import httpx

from mcp_blockchain_metadata.config import GatewaySettings
from mcp_blockchain_metadata.core.sessions import SessionRegistry
from mcp_blockchain_metadata.server.protocol import McpConnection, McpServer
from mcp_blockchain_metadata.sources.fetcher import RemoteFetcher
from mcp_blockchain_metadata.sources.repository import RepositoryCache
from mcp_blockchain_metadata.sources.tokens import TokenListCache
from mcp_blockchain_metadata.tools import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)


class Gateway:
    """
    Owns every long-lived component of a running gateway.

    Parameters
    ----------
    settings : GatewaySettings
        Runtime settings
    client : httpx.AsyncClient | None
        HTTP client for upstream fetches. The gateway creates and owns one if None.

    Examples
    --------
    >>> gateway = Gateway(GatewaySettings())
    >>> sorted(gateway.tools)
    ['get_metadata_of_template', 'get_miniapp_endpoints', 'get_protocol_tokens']

    """

    def __init__(self, settings: GatewaySettings, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self.fetcher = RemoteFetcher(client, default_timeout=settings.repository_timeout_seconds)
        self.repository = RepositoryCache(
            self.fetcher,
            settings.repository_url,
            ttl=settings.repository_ttl_seconds,
            timeout=settings.repository_timeout_seconds,
        )
        self.tokens = TokenListCache(
            self.fetcher,
            ttl=settings.token_list_ttl_seconds,
            timeout=settings.token_list_timeout_seconds,
        )
        self.sessions = SessionRegistry(session_timeout=settings.session_timeout_seconds)
        self.context = ToolContext(
            repository=self.repository,
            tokens=self.tokens,
            fetcher=self.fetcher,
            template_timeout=settings.template_timeout_seconds,
            template_fallback_url=settings.template_fallback_url,
        )
        self.tools = ToolRegistry.create_tools(self.context)
        self.server = McpServer(self.tools)

    def open_session(self) -> McpConnection:
        """
        Mint a session id and register a new connection under it.

        Returns
        -------
        McpConnection
            Connection whose ``session_id`` is the new id

        """
        session_id = str(uuid.uuid4())
        connection = McpConnection(session_id, on_close=self._on_connection_closed)
        self.sessions.create(session_id, connection)
        logger.info("Session opened: %s", session_id)
        return connection

    def get_session(self, session_id: str) -> McpConnection | None:
        """Look up a session, refreshing its inactivity timer."""
        handle = self.sessions.lookup(session_id)
        return handle if isinstance(handle, McpConnection) else None

    def close_session(self, session_id: str) -> None:
        self.sessions.remove(session_id)

    async def aclose(self) -> None:
        """Close every session and release the HTTP client."""
        self.sessions.clear()
        await self.fetcher.aclose()
        logger.info("Gateway shut down")

    def _on_connection_closed(self, connection: McpConnection) -> None:
        if connection.session_id is not None:
            self.sessions.remove(connection.session_id)
