"""HTTP transport: FastAPI app serving MCP over /mcp."""

import asyncio
import json
import logging
import time
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request, Security
from fastapi.responses import JSONResponse, Response, StreamingResponse
from fastapi.security import APIKeyHeader

from mcp_blockchain_metadata import __version__
from mcp_blockchain_metadata.config import GatewaySettings, load_settings
from mcp_blockchain_metadata.core.errors import ErrorCode
from mcp_blockchain_metadata.server.gateway import Gateway
from mcp_blockchain_metadata.server.protocol import McpConnection, error_response, is_initialize_request

logger = logging.getLogger(__name__)

SESSION_HEADER = "mcp-session-id"
KEEPALIVE_SECONDS = 15.0
REDACTED_HEADERS = frozenset({"authorization", "cookie"})


class JsonRpcHTTPException(Exception):
    """
    Request rejected before it reaches the MCP server.

    Rendered as a JSON-RPC error envelope with the given HTTP status.

    Parameters
    ----------
    status_code : int
        HTTP status of the response
    code : ErrorCode
        JSON-RPC error code
    message : str
        Error message

    """

    def __init__(self, status_code: int, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Copy of ``headers`` without credentials."""
    return {key: value for key, value in headers.items() if key.lower() not in REDACTED_HEADERS}


async def stream_events(connection: McpConnection, keepalive: float = KEEPALIVE_SECONDS) -> AsyncIterator[str]:
    """
    Render a connection's outbound queue as server-sent events.

    Emits a comment line every ``keepalive`` seconds without traffic and
    stops once the connection is closed.

    """
    while not connection.closed:
        try:
            message = await asyncio.wait_for(connection.outbound.get(), timeout=keepalive)
        except TimeoutError:
            yield ": keep-alive\n\n"
            continue
        if message is None:
            break
        yield f"event: message\ndata: {json.dumps(message)}\n\n"


def create_app(settings: GatewaySettings | None = None, gateway: Gateway | None = None) -> FastAPI:
    """
    Build the HTTP application.

    Parameters
    ----------
    settings : GatewaySettings | None
        Runtime settings. Loaded from the environment if None.
    gateway : Gateway | None
        Gateway to serve. Built from ``settings`` if None.

    Returns
    -------
    FastAPI
        Application exposing ``/mcp`` and ``/healthz``

    """
    settings = settings or (gateway.settings if gateway is not None else load_settings())
    gateway = gateway or Gateway(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if settings.auth_token:
            logger.info("Bearer authentication enabled on /mcp")
        else:
            logger.warning("No auth token configured; all requests to /mcp are allowed")
        yield
        await gateway.aclose()

    app = FastAPI(title="MCP Blockchain Metadata Gateway", version=__version__, lifespan=lifespan)
    app.state.gateway = gateway
    app.middleware("http")(request_logging_middleware)

    @app.exception_handler(JsonRpcHTTPException)
    async def rpc_http_exception_handler(request: Request, exc: JsonRpcHTTPException) -> JSONResponse:
        return JSONResponse(error_response(None, exc.code, exc.message), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(error_response(None, ErrorCode.INTERNAL_ERROR, "Internal server error"), status_code=500)

    authorization_header = APIKeyHeader(name="Authorization", scheme_name="BearerAuth", auto_error=False)

    async def require_token(request: Request, authorization: str | None = Security(authorization_header)) -> None:
        if not settings.auth_token:
            return

        request_info = {"method": request.method, "path": request.url.path}
        if not authorization or not authorization.startswith("Bearer "):
            logger.warning("Rejected request without bearer token: %s", request_info)
            raise JsonRpcHTTPException(401, ErrorCode.UNAUTHORIZED, "Unauthorized: invalid Authorization header")
        if authorization.removeprefix("Bearer ") != settings.auth_token:
            logger.warning("Rejected request with invalid token: %s", request_info)
            raise JsonRpcHTTPException(401, ErrorCode.UNAUTHORIZED, "Unauthorized: invalid token")

    def existing_session(request: Request) -> McpConnection:
        session_id = request.headers.get(SESSION_HEADER)
        if not session_id:
            raise JsonRpcHTTPException(400, ErrorCode.INVALID_SESSION, "Invalid or missing session id")
        connection = gateway.get_session(session_id)
        if connection is None:
            raise JsonRpcHTTPException(404, ErrorCode.INVALID_SESSION, "Session not found or expired")
        return connection

    @app.post("/mcp", dependencies=[Depends(require_token)])
    async def post_mcp(request: Request) -> Response:
        body = await request.body()
        try:
            payload = json.loads(body)
        except ValueError:
            return JSONResponse(error_response(None, ErrorCode.PARSE_ERROR, "Parse error"), status_code=400)

        created = False
        if request.headers.get(SESSION_HEADER):
            connection = existing_session(request)
        elif is_initialize_request(payload):
            connection = gateway.open_session()
            created = True
        else:
            raise JsonRpcHTTPException(400, ErrorCode.INVALID_SESSION, "Invalid or missing session id")

        result = await gateway.server.handle(connection, payload)
        session_id = connection.session_id or ""

        if created and result is not None and "error" in result:
            gateway.close_session(session_id)
            return JSONResponse(result, status_code=400)

        headers = {SESSION_HEADER: session_id}
        if result is None:
            return Response(status_code=202, headers=headers)
        return JSONResponse(result, headers=headers)

    @app.get("/mcp", dependencies=[Depends(require_token)])
    async def get_mcp(connection: McpConnection = Depends(existing_session)) -> StreamingResponse:  # noqa: B008
        return StreamingResponse(
            stream_events(connection),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", SESSION_HEADER: connection.session_id or ""},
        )

    @app.delete("/mcp", dependencies=[Depends(require_token)])
    async def delete_mcp(connection: McpConnection = Depends(existing_session)) -> Response:  # noqa: B008
        gateway.close_session(connection.session_id or "")
        return Response(status_code=204)

    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        return {"status": "ok", "version": __version__, "sessions": gateway.sessions.count()}

    return app


async def request_logging_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Any]],
) -> Any:
    start = time.perf_counter()
    response = await call_next(request)
    logger.debug(
        "%s %s -> %d (%.1f ms) headers=%s",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - start) * 1000,
        redact_headers(dict(request.headers)),
    )
    return response


__all__ = ["SESSION_HEADER", "JsonRpcHTTPException", "create_app", "redact_headers", "stream_events"]
