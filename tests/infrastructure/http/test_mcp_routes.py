from __future__ import annotations

from typing import Any

import anyio
import pytest
from fastapi.testclient import TestClient
from mcp import types as mcp_types

from apollo_gateway.json_types import JsonValue


class _RecordingStream:
    def __init__(self) -> None:
        self.sent: list[JsonValue] = []
        self.closed = False

    async def send(self, message: JsonValue) -> None:
        self.sent.append(message)

    def close(self) -> None:
        self.closed = True


def _open_session(gateway) -> tuple[str, _RecordingStream]:
    stream = _RecordingStream()
    client = gateway.runtime.clients.for_credential(request_value="session-key")
    session = gateway.runtime.sessions.create(stream, client=client)
    return session.session_id, stream


def test_post_message_without_session_id_returns_400(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post("/messages", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})

    assert response.status_code == 400
    assert response.json()["error"]["required"] == ["sessionId"]


def test_post_message_to_unknown_session_returns_404_not_501(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post(
        "/messages",
        params={"sessionId": "missing"},
        json={"jsonrpc": "2.0", "id": 1, "method": "ping"},
    )

    assert response.status_code == 404
    assert response.json()["error"]["type"] == "session_not_found"


def test_post_message_pushes_reply_onto_session_stream(make_gateway) -> None:
    gateway = make_gateway()
    session_id, stream = _open_session(gateway)

    response = TestClient(gateway.app).post(
        "/messages",
        params={"sessionId": session_id},
        json={"jsonrpc": "2.0", "id": 5, "method": "tools/call", "params": {"name": "nope", "arguments": {}}},
    )

    assert response.status_code == 202
    assert len(stream.sent) == 1
    reply = stream.sent[0]
    assert reply["id"] == 5
    assert reply["error"]["code"] == mcp_types.METHOD_NOT_FOUND


def test_post_message_uses_session_credential(make_gateway) -> None:
    gateway = make_gateway()
    session_id, stream = _open_session(gateway)

    TestClient(gateway.app).post(
        "/messages",
        params={"sessionId": session_id},
        json={
            "jsonrpc": "2.0",
            "id": 1,
            "method": "tools/call",
            "params": {"name": "organization_job_postings", "arguments": {"organization_id": "o1"}},
        },
    )

    assert gateway.backend.requests[0].headers["x-api-key"] == "session-key"
    assert stream.sent[0]["result"]["isError"] is False


def test_post_message_notification_sends_nothing(make_gateway) -> None:
    gateway = make_gateway()
    session_id, stream = _open_session(gateway)

    response = TestClient(gateway.app).post(
        "/messages",
        params={"sessionId": session_id},
        json={"jsonrpc": "2.0", "method": "notifications/initialized"},
    )

    assert response.status_code == 202
    assert stream.sent == []


def test_post_message_with_invalid_json_returns_400(make_gateway) -> None:
    gateway = make_gateway()
    session_id, _ = _open_session(gateway)

    response = TestClient(gateway.app).post(
        "/messages",
        params={"sessionId": session_id},
        content=b"{oops",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400


def test_open_stream_without_credential_returns_401(make_gateway) -> None:
    gateway = make_gateway()

    response = TestClient(gateway.app).get("/mcp")

    assert response.status_code == 401
    assert len(response.json()["error"]["accepted_methods"]) == 6
    assert len(gateway.runtime.sessions) == 0


def test_stateless_rpc_answers_single_request(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

    assert response.status_code == 200
    assert len(response.json()["result"]["tools"]) == 7


def test_stateless_rpc_batch_preserves_order_and_drops_notifications(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post(
        "/mcp",
        json=[
            {"jsonrpc": "2.0", "id": 1, "method": "ping"},
            {"jsonrpc": "2.0", "method": "notifications/initialized"},
            {"jsonrpc": "2.0", "id": 3, "method": "ping"},
        ],
    )

    assert response.status_code == 200
    assert [entry["id"] for entry in response.json()] == [1, 3]


def test_stateless_rpc_with_nothing_to_answer_returns_204(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})

    assert response.status_code == 204


def test_stateless_rpc_with_unparsable_body_returns_parse_error(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post("/mcp", content=b"not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == mcp_types.PARSE_ERROR


@pytest.mark.anyio
async def test_sse_stream_announces_endpoint_and_unregisters_on_shutdown(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")
    statuses: list[int] = []
    chunks: list[str] = []
    first_chunk = anyio.Event()
    request_sent = False

    async def receive() -> dict[str, Any]:
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await anyio.sleep_forever()
        raise AssertionError("unreachable")

    async def send(message: dict[str, Any]) -> None:
        if message["type"] == "http.response.start":
            statuses.append(message["status"])
        elif message["type"] == "http.response.body" and message.get("body"):
            chunks.append(message["body"].decode())
            first_chunk.set()

    async with anyio.create_task_group() as tg:
        tg.start_soon(gateway.app, _stream_scope("/sse"), receive, send)
        with anyio.fail_after(5):
            await first_chunk.wait()
        assert len(gateway.runtime.sessions) == 1
        assert gateway.runtime.shutdown.trigger("test") is True

    session_id = chunks[0].split("sessionId=", 1)[1].strip()
    assert statuses == [200]
    assert chunks[0] == f"event: endpoint\ndata: /messages?sessionId={session_id}\n\n"
    assert len(gateway.runtime.sessions) == 0
    assert gateway.runtime.shutdown.trigger("again") is False


@pytest.mark.anyio
async def test_sse_stream_unregisters_session_when_client_disconnects(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")
    first_chunk = anyio.Event()
    disconnected = anyio.Event()
    request_sent = False

    async def receive() -> dict[str, Any]:
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await disconnected.wait()
        return {"type": "http.disconnect"}

    async def send(message: dict[str, Any]) -> None:
        if message["type"] == "http.response.body" and message.get("body"):
            first_chunk.set()

    with anyio.fail_after(5):
        async with anyio.create_task_group() as tg:
            tg.start_soon(gateway.app, _stream_scope("/mcp"), receive, send)
            await first_chunk.wait()
            assert len(gateway.runtime.sessions) == 1
            disconnected.set()

    assert len(gateway.runtime.sessions) == 0
    assert gateway.runtime.shutdown.triggered is False


def _stream_scope(path: str) -> dict[str, Any]:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"testserver")],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }
