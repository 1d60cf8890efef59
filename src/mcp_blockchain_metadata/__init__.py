"""MCP gateway serving token lists, mini-app endpoints and template metadata."""

__version__ = "1.0.0"
