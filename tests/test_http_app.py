"""Tests for the HTTP transport."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from mcp_blockchain_metadata import __version__
from mcp_blockchain_metadata.core.errors import ErrorCode
from mcp_blockchain_metadata.server.http import SESSION_HEADER, create_app, redact_headers, stream_events
from mcp_blockchain_metadata.server.protocol import McpConnection

INITIALIZE = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {"protocolVersion": "2025-06-18", "clientInfo": {"name": "pytest"}, "capabilities": {}},
}


@pytest.fixture
def client(make_gateway):
    app = create_app(gateway=make_gateway())
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_id(client) -> str:
    response = client.post("/mcp", json=INITIALIZE)
    assert response.status_code == 200
    return response.headers[SESSION_HEADER]


def test_healthz(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": __version__, "sessions": 0}


def test_initialize_opens_a_session(client):
    response = client.post("/mcp", json=INITIALIZE)

    assert response.status_code == 200
    assert response.headers[SESSION_HEADER]
    assert response.json()["result"]["protocolVersion"] == "2025-06-18"
    assert client.get("/healthz").json()["sessions"] == 1


def test_failed_initialize_does_not_keep_a_session(client):
    payload = {**INITIALIZE, "params": {"protocolVersion": "1.0"}}

    response = client.post("/mcp", json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == ErrorCode.INVALID_PARAMS
    assert client.get("/healthz").json()["sessions"] == 0


def test_request_without_session(client):
    response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

    assert response.status_code == 400
    body = response.json()
    assert body["id"] is None
    assert body["error"]["code"] == ErrorCode.INVALID_SESSION


def test_request_with_unknown_session(client):
    response = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
        headers={SESSION_HEADER: "no-such-session"},
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == ErrorCode.INVALID_SESSION


def test_tools_call_over_session(client, session_id):
    response = client.post(
        "/mcp",
        json={
            "jsonrpc": "2.0",
            "id": 2,
            "method": "tools/call",
            "params": {"name": "get_miniapp_endpoints", "arguments": {}},
        },
        headers={SESSION_HEADER: session_id},
    )

    assert response.status_code == 200
    assert response.headers[SESSION_HEADER] == session_id
    result = response.json()["result"]
    assert result["isError"] is False
    assert result["structuredContent"]["metadata"]["totalEndpoints"] == 1


def test_notification_is_accepted(client, session_id):
    response = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "method": "notifications/initialized"},
        headers={SESSION_HEADER: session_id},
    )

    assert response.status_code == 202
    assert response.content == b""


def test_parse_error(client):
    response = client.post("/mcp", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": "Parse error"}}


def test_delete_closes_the_session(client, session_id):
    response = client.delete("/mcp", headers={SESSION_HEADER: session_id})
    assert response.status_code == 204

    response = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 3, "method": "ping"},
        headers={SESSION_HEADER: session_id},
    )
    assert response.status_code == 404


def test_event_stream_requires_a_session(client):
    assert client.get("/mcp").status_code == 400
    assert client.get("/mcp", headers={SESSION_HEADER: "missing"}).status_code == 404


class TestBearerAuth:
    @pytest.fixture
    def client(self, make_gateway):
        app = create_app(gateway=make_gateway(auth_token="s3cret"))
        with TestClient(app) as test_client:
            yield test_client

    def test_missing_token(self, client):
        response = client.post("/mcp", json=INITIALIZE)

        assert response.status_code == 401
        assert response.json() == {
            "jsonrpc": "2.0",
            "id": None,
            "error": {"code": ErrorCode.UNAUTHORIZED, "message": "Unauthorized: invalid Authorization header"},
        }

    def test_wrong_token(self, client):
        response = client.post("/mcp", json=INITIALIZE, headers={"Authorization": "Bearer guess"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Unauthorized: invalid token"

    def test_valid_token(self, client):
        response = client.post("/mcp", json=INITIALIZE, headers={"Authorization": "Bearer s3cret"})

        assert response.status_code == 200

    def test_healthz_is_public(self, client):
        assert client.get("/healthz").status_code == 200


def test_redact_headers():
    headers = {"Authorization": "Bearer x", "Cookie": "a=b", SESSION_HEADER: "abc"}

    assert redact_headers(headers) == {SESSION_HEADER: "abc"}


@pytest.mark.anyio("asyncio")
async def test_stream_events_renders_messages_until_closed():
    connection = McpConnection("s-1")
    connection.notify("notifications/message", {"level": "info"})
    stream = stream_events(connection, keepalive=1.0)

    assert await anext(stream) == (
        'event: message\ndata: {"jsonrpc": "2.0", "method": "notifications/message", "params": {"level": "info"}}\n\n'
    )

    connection.close()
    assert [event async for event in stream] == []


@pytest.mark.anyio("asyncio")
async def test_stream_events_sends_keepalive():
    connection = McpConnection("s-1")
    stream = stream_events(connection, keepalive=0.01)

    assert await anext(stream) == ": keep-alive\n\n"

    connection.close()
    remaining = [event async for event in stream]
    assert remaining == []


@pytest.mark.anyio("asyncio")
async def test_stream_events_wakes_on_close():
    connection = McpConnection("s-1")
    collected: list[str] = []

    async def consume() -> None:
        async for event in stream_events(connection, keepalive=10.0):
            collected.append(event)

    task = asyncio.ensure_future(consume())
    await asyncio.sleep(0)
    connection.close()
    await asyncio.wait_for(task, timeout=1.0)

    assert collected == []
