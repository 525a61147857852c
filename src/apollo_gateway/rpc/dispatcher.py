"""JSON-RPC dispatch of MCP requests onto the operation registry."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import anyio
from mcp import types as mcp_types
from mcp.shared.version import SUPPORTED_PROTOCOL_VERSIONS

from apollo_gateway.apollo.client import ApolloClient
from apollo_gateway.errors import (
    BackendError,
    BackendTransportError,
    GatewayError,
    OrganizationNotFoundError,
    UnknownOperationError,
    ValidationError,
)
from apollo_gateway.json_types import JsonObject, JsonValue
from apollo_gateway.tools.registry import OperationExecutor

logger = logging.getLogger("apollo_gateway.rpc")

JSONRPC_VERSION = "2.0"
SERVER_ERROR = -32000

_TOOL_FAILURES = (BackendError, BackendTransportError, OrganizationNotFoundError)


class RpcError(Exception):
    """Raised inside a handler to produce a JSON-RPC error response."""

    def __init__(self, code: int, message: str, data: JsonValue = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_error(self) -> JsonObject:
        error = mcp_types.ErrorData(code=self.code, message=self.message, data=self.data)
        return error.model_dump(mode="json", exclude_none=True)


def error_response(request_id: JsonValue, error: RpcError) -> JsonObject:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_error()}


def parse_error_response(detail: str) -> JsonObject:
    return error_response(None, RpcError(mcp_types.PARSE_ERROR, f"Parse error: {detail}"))


class RpcDispatcher:
    """Routes JSON-RPC envelopes (single or batched) to MCP method handlers.

    Envelopes without an ``id`` are notifications: they are executed but never
    answered. Batches run concurrently and answer in input order.
    """

    def __init__(
        self,
        executor: OperationExecutor,
        *,
        server_name: str,
        server_version: str,
    ) -> None:
        self._executor = executor
        self._server_info = mcp_types.Implementation(name=server_name, version=server_version)

    @property
    def executor(self) -> OperationExecutor:
        return self._executor

    async def dispatch(self, payload: JsonValue, client: ApolloClient) -> JsonValue | None:
        """Handle a decoded request body; ``None`` means nothing to send back."""
        if isinstance(payload, list):
            return await self.dispatch_batch(payload, client)
        return await self.handle_message(payload, client)

    async def dispatch_batch(self, entries: list[JsonValue], client: ApolloClient) -> list[JsonValue] | None:
        if not entries:
            return None
        results: list[JsonObject | None] = [None] * len(entries)

        async def _run(index: int, entry: JsonValue) -> None:
            results[index] = await self.handle_message(entry, client)

        async with anyio.create_task_group() as tg:
            for index, entry in enumerate(entries):
                tg.start_soon(_run, index, entry)

        responses: list[JsonValue] = [result for result in results if result is not None]
        return responses or None

    async def handle_message(self, message: JsonValue, client: ApolloClient) -> JsonObject | None:
        if not isinstance(message, dict):
            return error_response(None, RpcError(mcp_types.INVALID_REQUEST, "request must be an object"))

        if "method" not in message and ("result" in message or "error" in message):
            # Responses to server-initiated requests; the gateway never sends any.
            return None

        is_notification = "id" not in message
        request_id = message.get("id")
        if not is_notification and not _valid_request_id(request_id):
            return error_response(None, RpcError(mcp_types.INVALID_REQUEST, "id must be a string or number"))

        method = message.get("method")
        if message.get("jsonrpc") != JSONRPC_VERSION or not isinstance(method, str) or not method:
            if is_notification:
                return None
            return error_response(
                request_id,
                RpcError(mcp_types.INVALID_REQUEST, "request must carry jsonrpc '2.0' and a method"),
            )

        params = message.get("params")
        try:
            if params is not None and not isinstance(params, dict):
                raise RpcError(mcp_types.INVALID_PARAMS, "params must be an object")
            result = await self._route(method, params or {}, client)
        except RpcError as exc:
            if is_notification:
                return None
            return error_response(request_id, exc)
        except Exception as exc:
            logger.exception(
                "rpc handler failed",
                extra={"data": {"method": method, "id": request_id}},
            )
            if is_notification:
                return None
            return error_response(request_id, RpcError(SERVER_ERROR, f"Server error: {exc}"))

        if is_notification:
            return None
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}

    # ------------------------------------------------------------------
    # method handlers

    async def _route(
        self,
        method: str,
        params: Mapping[str, Any],
        client: ApolloClient,
    ) -> JsonObject:
        if method.startswith("notifications/"):
            logger.debug("notification received", extra={"data": {"method": method}})
            return {}
        if method == "initialize":
            return self._initialize(params)
        if method == "ping":
            return {}
        if method == "tools/list":
            return self.list_tools()
        if method == "tools/call":
            return await self._call_tool(params, client)
        if method == "resources/list":
            return mcp_types.ListResourcesResult(resources=[]).model_dump(
                mode="json", by_alias=True, exclude_none=True
            )
        raise RpcError(mcp_types.METHOD_NOT_FOUND, f"Method not found: {method}", {"method": method})

    def _initialize(self, params: Mapping[str, Any]) -> JsonObject:
        requested = params.get("protocolVersion")
        if isinstance(requested, str) and requested in SUPPORTED_PROTOCOL_VERSIONS:
            version = requested
        else:
            version = mcp_types.LATEST_PROTOCOL_VERSION
        client_info = params.get("clientInfo")
        logger.info(
            "client initialized",
            extra={"data": {"requested_version": requested, "negotiated_version": version, "client": client_info}},
        )
        result = mcp_types.InitializeResult(
            protocolVersion=version,
            capabilities=mcp_types.ServerCapabilities(
                tools=mcp_types.ToolsCapability(listChanged=False),
                resources=mcp_types.ResourcesCapability(subscribe=False, listChanged=False),
            ),
            serverInfo=self._server_info,
        )
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)

    def list_tools(self) -> JsonObject:
        tools = [descriptor.to_tool() for descriptor in self._executor.registry.list()]
        return mcp_types.ListToolsResult(tools=tools).model_dump(mode="json", by_alias=True, exclude_none=True)

    async def _call_tool(self, params: Mapping[str, Any], client: ApolloClient) -> JsonObject:
        name = params.get("name")
        if not isinstance(name, str) or not name.strip():
            raise RpcError(mcp_types.INVALID_PARAMS, "tools/call requires a tool name", {"required": ["name"]})
        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            raise RpcError(mcp_types.INVALID_PARAMS, "tools/call arguments must be an object")

        try:
            result = await self._executor.execute(name, arguments, client)
        except UnknownOperationError as exc:
            raise RpcError(mcp_types.METHOD_NOT_FOUND, exc.message, exc.details()) from exc
        except ValidationError as exc:
            raise RpcError(mcp_types.INVALID_PARAMS, exc.message, exc.details() or None) from exc
        except _TOOL_FAILURES as exc:
            logger.warning(
                "tool call returned error result",
                extra={"data": {"tool": name, "error_type": exc.error_type}},
            )
            return _tool_result(f"Apollo.io API error: {exc.message}", is_error=True)
        except GatewayError as exc:
            raise RpcError(SERVER_ERROR, f"Server error: {exc.message}") from exc

        return _tool_result(json.dumps(result, indent=2), is_error=False)


def _tool_result(text: str, *, is_error: bool) -> JsonObject:
    result = mcp_types.CallToolResult(
        content=[mcp_types.TextContent(type="text", text=text)],
        isError=is_error,
    )
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)


def _valid_request_id(value: JsonValue) -> bool:
    if isinstance(value, bool):
        return False
    return value is None or isinstance(value, (str, int))


__all__ = [
    "JSONRPC_VERSION",
    "SERVER_ERROR",
    "RpcDispatcher",
    "RpcError",
    "error_response",
    "parse_error_response",
]
