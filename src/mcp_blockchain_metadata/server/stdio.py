"""Stdio transport: newline-delimited JSON-RPC over stdin/stdout."""

import asyncio
import json
import logging
import sys
from typing import Any, TextIO

from mcp_blockchain_metadata.core.errors import ErrorCode
from mcp_blockchain_metadata.server.gateway import Gateway
from mcp_blockchain_metadata.server.protocol import McpConnection, McpServer, error_response

logger = logging.getLogger(__name__)


async def handle_line(server: McpServer, connection: McpConnection, line: str) -> dict[str, Any] | None:
    """
    Decode and handle one input line.

    Parameters
    ----------
    server : McpServer
        Server dispatching the message
    connection : McpConnection
        The single stdio connection
    line : str
        Raw input line

    Returns
    -------
    dict[str, Any] | None
        Response to write, or None for blank lines and notifications

    """
    line = line.strip()
    if not line:
        return None
    try:
        payload = json.loads(line)
    except ValueError:
        logger.warning("Skipping non-JSON line from stdin: %s", line[:100])
        return error_response(None, ErrorCode.PARSE_ERROR, "Parse error")
    return await server.handle(connection, payload)


def write_message(stream: TextIO, message: dict[str, Any]) -> None:
    stream.write(json.dumps(message, separators=(",", ":"), ensure_ascii=False) + "\n")
    stream.flush()


async def run_stdio(gateway: Gateway, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
    """
    Serve one implicit connection until stdin reaches EOF.

    Parameters
    ----------
    gateway : Gateway
        Gateway whose MCP server handles the messages
    stdin : TextIO | None
        Input stream (default: sys.stdin)
    stdout : TextIO | None
        Output stream (default: sys.stdout)

    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    connection = McpConnection()
    logger.info("MCP server ready on stdio")

    try:
        while True:
            line = await asyncio.to_thread(stdin.readline)
            if not line:
                logger.info("stdin closed, shutting down")
                break

            response = await handle_line(gateway.server, connection, line)
            # notifications raised while handling precede the response
            while not connection.outbound.empty():
                message = connection.outbound.get_nowait()
                if message is not None:
                    write_message(stdout, message)
            if response is not None:
                write_message(stdout, response)
    finally:
        connection.close()
        await gateway.aclose()
