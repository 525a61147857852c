"""Newline-delimited JSON-RPC over the process's standard streams."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import AsyncIterable, AsyncIterator
from typing import Protocol

import anyio
import anyio.to_thread
from anyio import CancelScope

from apollo_gateway.apollo.client import ApolloClient
from apollo_gateway.application.ports.session_registry import SessionRegistryPort
from apollo_gateway.json_types import JsonValue
from apollo_gateway.rpc.dispatcher import RpcDispatcher, parse_error_response

logger = logging.getLogger("apollo_gateway.transport.stdio")


class TextWriter(Protocol):
    async def write(self, data: str) -> int | None: ...

    async def flush(self) -> None: ...


class StdioChannel:
    """Serialized writer for outbound frames; ``close`` stops the read loop."""

    def __init__(self, writer: TextWriter) -> None:
        self._writer = writer
        self._lock = anyio.Lock()
        self._scope: CancelScope | None = None
        self._closed = False

    def bind(self, scope: CancelScope) -> None:
        self._scope = scope
        if self._closed:
            scope.cancel()

    async def send(self, message: JsonValue) -> None:
        line = json.dumps(message, separators=(",", ":")) + "\n"
        async with self._lock:
            await self._writer.write(line)
            await self._writer.flush()

    def close(self) -> None:
        self._closed = True
        if self._scope is not None:
            self._scope.cancel()


async def _stdin_lines() -> AsyncIterator[str]:
    while True:
        line = await anyio.to_thread.run_sync(sys.stdin.readline, abandon_on_cancel=True)
        if not line:
            return
        yield line


async def serve_stdio(
    dispatcher: RpcDispatcher,
    client: ApolloClient,
    sessions: SessionRegistryPort,
    *,
    reader: AsyncIterable[str] | None = None,
    writer: TextWriter | None = None,
) -> None:
    """Read requests until end of input or until the session is closed.

    Each line is dispatched concurrently; in-flight requests finish before the
    function returns on end of input.
    """
    source: AsyncIterable[str] = reader if reader is not None else _stdin_lines()
    sink: TextWriter = writer if writer is not None else anyio.wrap_file(sys.stdout)
    channel = StdioChannel(sink)
    session = sessions.create(channel, client=client)

    async def _handle(payload: JsonValue) -> None:
        response = await dispatcher.dispatch(payload, client)
        if response is not None:
            await channel.send(response)

    logger.info("stdio session started", extra={"data": {"session_id": session.session_id}})
    try:
        async with anyio.create_task_group() as tg:
            channel.bind(tg.cancel_scope)
            async for raw in source:
                line = raw.strip()
                if not line:
                    continue
                try:
                    payload = json.loads(line)
                except json.JSONDecodeError as exc:
                    logger.warning("discarding malformed input line", extra={"data": {"error": str(exc)}})
                    await channel.send(parse_error_response(str(exc)))
                    continue
                tg.start_soon(_handle, payload)
    finally:
        sessions.remove(session.session_id, session=session)
        logger.info("stdio session ended", extra={"data": {"session_id": session.session_id}})


__all__ = ["StdioChannel", "TextWriter", "serve_stdio"]
