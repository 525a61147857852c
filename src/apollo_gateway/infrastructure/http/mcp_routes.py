"""MCP surfaces: the SSE stream, its message endpoint, and stateless JSON-RPC."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator

import anyio
from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from apollo_gateway.apollo.client import ApolloClient
from apollo_gateway.domain.session import Session
from apollo_gateway.errors import SessionNotFoundError, ValidationError
from apollo_gateway.infrastructure.http.dependencies import GatewayDependencies, GatewayRouteDeps
from apollo_gateway.json_types import JsonValue
from apollo_gateway.rpc.dispatcher import RpcDispatcher, parse_error_response
from apollo_gateway.transport.sse import SseChannel

logger = logging.getLogger("apollo_gateway.transport.sse")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
MESSAGES_PATH = "/messages"


def add_mcp_routes(app: FastAPI, dependencies: GatewayDependencies) -> None:
    get_deps = dependencies.get_deps
    require_client = dependencies.require_apollo_client
    require_token = dependencies.require_access_token

    async def open_stream(
        request: Request,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> StreamingResponse:
        channel = SseChannel()
        sessions = deps.sessions

        def _on_close(session: Session) -> None:
            sessions.remove(session.session_id, session=session)

        session = sessions.create(channel, client=client, on_close=_on_close)
        root_path = request.scope.get("root_path", "")
        endpoint = f"{root_path}{MESSAGES_PATH}?sessionId={session.session_id}"

        async def _events() -> AsyncIterator[str]:
            try:
                async for chunk in channel.events(endpoint, keepalive_seconds=deps.sse_keepalive_seconds):
                    yield chunk
            finally:
                channel.close()
                if session.on_close is not None:
                    session.on_close(session)
                logger.info("sse stream closed", extra={"data": {"session_id": session.session_id}})

        logger.info("sse stream opened", extra={"data": {"session_id": session.session_id}})
        return StreamingResponse(_events(), media_type="text/event-stream", headers=SSE_HEADERS)

    for path in ("/mcp", "/sse"):
        app.add_api_route(
            path,
            open_stream,
            methods=["GET"],
            tags=["mcp"],
            description="Open an MCP session over Server-Sent Events.",
        )

    @app.post(
        MESSAGES_PATH,
        status_code=202,
        tags=["mcp"],
        description="Deliver a JSON-RPC message to an open session; the reply arrives on its stream.",
    )
    async def post_message(
        request: Request,
        background_tasks: BackgroundTasks,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        _authorized: None = Depends(require_token),  # noqa: B008
    ) -> Response:
        session_id = (request.query_params.get("sessionId") or "").strip()
        if not session_id:
            raise ValidationError("sessionId query parameter is required", required=("sessionId",))
        session = deps.sessions.lookup(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        try:
            payload = json.loads(await request.body())
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError(f"message is not valid JSON: {exc}") from exc

        background_tasks.add_task(_deliver, deps.dispatcher, session, payload)
        return Response(content="Accepted", status_code=202, media_type="text/plain")

    @app.post(
        "/mcp",
        tags=["mcp"],
        description="Stateless JSON-RPC: answer a single request or a batch in the response body.",
    )
    async def post_rpc(
        request: Request,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> Response:
        try:
            payload = json.loads(await request.body())
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            return JSONResponse(status_code=400, content=parse_error_response(str(exc)))
        result = await deps.dispatcher.dispatch(payload, client)
        if result is None:
            return Response(status_code=204)
        return JSONResponse(content=result)


async def _deliver(dispatcher: RpcDispatcher, session: Session, payload: JsonValue) -> None:
    response = await dispatcher.dispatch(payload, session.client)
    if response is None:
        return
    try:
        await session.stream.send(response)
    except (anyio.ClosedResourceError, anyio.BrokenResourceError):
        logger.info(
            "session closed before reply was delivered",
            extra={"data": {"session_id": session.session_id}},
        )


__all__ = ["MESSAGES_PATH", "add_mcp_routes"]
