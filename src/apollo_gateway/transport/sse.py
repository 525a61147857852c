"""Server-Sent Events channel backing persistent MCP sessions."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from apollo_gateway.json_types import JsonValue

KEEPALIVE_COMMENT = ": keepalive\n\n"


def format_event(event: str, data: str) -> str:
    lines = "".join(f"data: {line}\n" for line in data.splitlines() or [""])
    return f"event: {event}\n{lines}\n"


class SseChannel:
    """Outbound queue for one SSE connection.

    ``send`` enqueues a JSON-RPC frame; ``events`` renders the queue as SSE text
    until ``close`` is called or the consumer goes away.
    """

    def __init__(self, *, max_buffer_size: int = 64) -> None:
        send, receive = anyio.create_memory_object_stream(max_buffer_size=max_buffer_size)
        self._send: MemoryObjectSendStream[JsonValue] = send
        self._receive: MemoryObjectReceiveStream[JsonValue] = receive

    async def send(self, message: JsonValue) -> None:
        await self._send.send(message)

    def close(self) -> None:
        self._send.close()

    async def events(self, endpoint: str, *, keepalive_seconds: float) -> AsyncIterator[str]:
        yield format_event("endpoint", endpoint)
        async with self._receive:
            while True:
                message: JsonValue = None
                with anyio.move_on_after(keepalive_seconds) as scope:
                    try:
                        message = await self._receive.receive()
                    except anyio.EndOfStream:
                        return
                if scope.cancelled_caught:
                    yield KEEPALIVE_COMMENT
                    continue
                yield format_event("message", json.dumps(message, separators=(",", ":")))


__all__ = ["KEEPALIVE_COMMENT", "SseChannel", "format_event"]
