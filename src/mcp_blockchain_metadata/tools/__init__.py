"""Query tools. Importing this package registers every tool."""

from mcp_blockchain_metadata.tools.base import BaseTool, ToolContext
from mcp_blockchain_metadata.tools.miniapp_endpoints import MiniAppEndpointsTool
from mcp_blockchain_metadata.tools.protocol_tokens import ProtocolTokensTool
from mcp_blockchain_metadata.tools.registry import ToolRegistry
from mcp_blockchain_metadata.tools.template_metadata import TemplateMetadataTool

__all__ = [
    "BaseTool",
    "MiniAppEndpointsTool",
    "ProtocolTokensTool",
    "TemplateMetadataTool",
    "ToolContext",
    "ToolRegistry",
]
