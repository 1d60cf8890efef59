"""JSON-RPC message handling for the MCP protocol."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from mcp_blockchain_metadata import __version__
from mcp_blockchain_metadata.core.errors import ErrorCode, GatewayError, InvalidArgumentError
from mcp_blockchain_metadata.tools.base import BaseTool

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
SERVER_NAME = "mcp-blockchain-metadata"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-11-25", "2025-06-18", "2024-11-05")

INSTRUCTIONS = (
    "Read-only blockchain metadata: token lists per protocol and chain, mini-app endpoints "
    "and mini-app template documents."
)


def negotiate_protocol_version(version: str | None) -> str | None:
    """
    Pick the protocol version for a session.

    Parameters
    ----------
    version : str | None
        Version requested by the client

    Returns
    -------
    str | None
        The requested version if supported, the latest version if none was
        requested, or None if the requested version is not supported

    """
    if not version:
        return SUPPORTED_PROTOCOL_VERSIONS[0]
    if version in SUPPORTED_PROTOCOL_VERSIONS:
        return version
    return None


def is_initialize_request(payload: Any) -> bool:
    """True if the payload is a single ``initialize`` request."""
    return isinstance(payload, dict) and payload.get("method") == "initialize" and "id" in payload


def success_response(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
    """Build a JSON-RPC error envelope; ``data`` is omitted when None."""
    error: dict[str, Any] = {"code": int(code), "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


class McpConnection:
    """
    Per-session connection state.

    Holds what ``initialize`` negotiated and a queue of server-to-client
    messages drained by the event stream. ``close`` is idempotent and runs
    the ``on_close`` callback once.

    Parameters
    ----------
    session_id : str | None
        Session the connection belongs to (None for stdio)
    on_close : Callable[[McpConnection], None] | None
        Called once when the connection closes

    """

    def __init__(
        self,
        session_id: str | None = None,
        on_close: Callable[["McpConnection"], None] | None = None,
    ) -> None:
        self.session_id = session_id
        self.protocol_version: str | None = None
        self.client_info: dict[str, Any] = {}
        self.client_capabilities: dict[str, Any] = {}
        self.initialized = False
        self.outbound: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self._closed = asyncio.Event()
        self._on_close = on_close

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Queue a notification for the client; dropped once closed."""
        if self.closed:
            return
        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
        if params is not None:
            message["params"] = params
        self.outbound.put_nowait(message)

    def close(self) -> None:
        if self.closed:
            return
        self._closed.set()
        # wakes readers blocked on the queue
        self.outbound.put_nowait(None)
        logger.debug("Connection closed: %s", self.session_id)
        if self._on_close is not None:
            self._on_close(self)

    async def wait_closed(self) -> None:
        await self._closed.wait()


Handler = Callable[[McpConnection, dict[str, Any]], Awaitable[Any]]


class McpServer:
    """
    Dispatches JSON-RPC messages to the MCP methods and the query tools.

    Supports ``initialize``, ``ping``, ``tools/list`` and ``tools/call``.
    Notifications never produce a response.

    Parameters
    ----------
    tools : Mapping[str, BaseTool]
        Tool instances keyed by name
    name : str
        Server name reported by ``initialize``
    version : str
        Server version reported by ``initialize``

    """

    def __init__(self, tools: Mapping[str, BaseTool], name: str = SERVER_NAME, version: str = __version__) -> None:
        self.tools = dict(tools)
        self.name = name
        self.version = version
        self._methods: dict[str, Handler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    async def handle(self, connection: McpConnection, payload: Any) -> dict[str, Any] | None:
        """
        Handle one decoded JSON-RPC message.

        Parameters
        ----------
        connection : McpConnection
            Connection the message arrived on
        payload : Any
            Decoded JSON body

        Returns
        -------
        dict[str, Any] | None
            Response envelope, or None for notifications

        """
        if isinstance(payload, list):
            return error_response(None, ErrorCode.INVALID_REQUEST, "Batch requests are not supported")
        if not isinstance(payload, dict):
            return error_response(None, ErrorCode.INVALID_REQUEST, "Request must be a JSON object")

        request_id = payload.get("id")
        method = payload.get("method")
        if payload.get("jsonrpc") != JSONRPC_VERSION or not isinstance(method, str):
            return error_response(request_id, ErrorCode.INVALID_REQUEST, "Invalid JSON-RPC request")

        if "id" not in payload:
            self._handle_notification(connection, method)
            return None

        handler = self._methods.get(method)
        if handler is None:
            return error_response(request_id, ErrorCode.METHOD_NOT_FOUND, f"Method not found: {method}")

        params = payload.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return error_response(request_id, ErrorCode.INVALID_PARAMS, "params must be an object")

        try:
            result = await handler(connection, params)
        except GatewayError as e:
            logger.warning("Request %s failed: %s", method, e.message)
            return error_response(request_id, e.code, e.message, e.to_error_data())
        except Exception:
            logger.exception("Unexpected error handling %s", method)
            return error_response(request_id, ErrorCode.INTERNAL_ERROR, "Internal error")

        return success_response(request_id, result)

    def _handle_notification(self, connection: McpConnection, method: str) -> None:
        if method == "notifications/initialized":
            connection.initialized = True
        logger.debug("Notification received: %s", method)

    async def _initialize(self, connection: McpConnection, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = negotiate_protocol_version(requested)
        if version is None:
            msg = f"Unsupported protocol version {requested}"
            raise InvalidArgumentError(msg, hint=f"Supported versions: {', '.join(SUPPORTED_PROTOCOL_VERSIONS)}")

        connection.protocol_version = version
        client_info = params.get("clientInfo")
        connection.client_info = client_info if isinstance(client_info, dict) else {}
        capabilities = params.get("capabilities")
        connection.client_capabilities = capabilities if isinstance(capabilities, dict) else {}
        logger.info(
            "Session %s initialized (client=%s, protocol=%s)",
            connection.session_id,
            connection.client_info.get("name", "unknown"),
            version,
        )
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": self.name, "version": self.version},
            "instructions": INSTRUCTIONS,
        }

    async def _ping(self, connection: McpConnection, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def _list_tools(self, connection: McpConnection, params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": [tool.descriptor() for tool in self.tools.values()]}

    async def _call_tool(self, connection: McpConnection, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        tool = self.tools.get(name) if isinstance(name, str) else None
        if tool is None:
            msg = f"Unknown tool: {name}"
            raise InvalidArgumentError(msg, hint=f"Available tools: {', '.join(self.tools)}")

        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            msg = "tools/call arguments must be an object"
            raise InvalidArgumentError(msg)

        meta = params.get("_meta")
        progress_token = meta.get("progressToken") if isinstance(meta, dict) else None

        logger.debug("Calling tool %s (session=%s)", name, connection.session_id)
        if progress_token is not None:
            connection.notify("notifications/progress", {"progressToken": progress_token, "progress": 0, "total": 1})
        result = await tool.call(arguments)
        if progress_token is not None:
            connection.notify("notifications/progress", {"progressToken": progress_token, "progress": 1, "total": 1})
        return result.to_response()
