"""Core functionality including models, errors and the session registry."""

from mcp_blockchain_metadata.core.errors import ErrorCode, GatewayError
from mcp_blockchain_metadata.core.models import (
    MiniAppEndpoint,
    Repository,
    Template,
    TemplateCategory,
    TemplatesRepository,
    TokenInfo,
    ToolResult,
    VerificationState,
)
from mcp_blockchain_metadata.core.sessions import SessionHandle, SessionRegistry

__all__ = [
    "ErrorCode",
    "GatewayError",
    "MiniAppEndpoint",
    "Repository",
    "SessionHandle",
    "SessionRegistry",
    "Template",
    "TemplateCategory",
    "TemplatesRepository",
    "TokenInfo",
    "ToolResult",
    "VerificationState",
]
