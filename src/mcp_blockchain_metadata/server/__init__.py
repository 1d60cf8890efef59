"""MCP server: protocol handling, HTTP and stdio transports."""

from mcp_blockchain_metadata.server.gateway import Gateway
from mcp_blockchain_metadata.server.protocol import (
    SUPPORTED_PROTOCOL_VERSIONS,
    McpConnection,
    McpServer,
    is_initialize_request,
    negotiate_protocol_version,
)

__all__ = [
    "SUPPORTED_PROTOCOL_VERSIONS",
    "Gateway",
    "McpConnection",
    "McpServer",
    "is_initialize_request",
    "negotiate_protocol_version",
]
