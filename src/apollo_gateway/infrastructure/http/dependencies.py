"""FastAPI dependencies shared by the gateway routes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Depends, Request, Security

from apollo_gateway.apollo.client import ApolloClient
from apollo_gateway.application.ports.session_registry import SessionRegistryPort
from apollo_gateway.infrastructure.http.auth import (
    APOLLO_KEY_SCHEME,
    GATEWAY_TOKEN_SCHEME,
    extract_api_key,
    read_json_body,
    verify_access_token,
)
from apollo_gateway.rpc.dispatcher import RpcDispatcher
from apollo_gateway.runtime.bootstrap import ApolloClientFactory
from apollo_gateway.tools.registry import OperationExecutor

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


@dataclass(frozen=True)
class GatewayRouteDeps:
    clients: ApolloClientFactory
    executor: OperationExecutor
    dispatcher: RpcDispatcher
    sessions: SessionRegistryPort
    access_token: str | None
    server_name: str
    server_version: str
    sse_keepalive_seconds: float


DepsProvider = Callable[[], GatewayRouteDeps]


@dataclass(frozen=True)
class GatewayDependencies:
    """Dependency callables bound to one deps provider."""

    get_deps: Callable[[], GatewayRouteDeps]
    require_access_token: Callable[..., object]
    require_apollo_client: Callable[..., object]


def build_dependencies(deps_provider: DepsProvider) -> GatewayDependencies:
    def get_deps() -> GatewayRouteDeps:
        return deps_provider()

    async def require_access_token(
        request: Request,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        _token: str | None = Security(GATEWAY_TOKEN_SCHEME),
    ) -> None:
        verify_access_token(request.headers, deps.access_token)

    async def require_apollo_client(
        request: Request,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        _authorized: None = Depends(require_access_token),  # noqa: B008
        _api_key: str | None = Security(APOLLO_KEY_SCHEME),
    ) -> ApolloClient:
        body = await read_json_body(request) if request.method in _BODY_METHODS else None
        api_key = extract_api_key(
            request.headers,
            request.query_params,
            body,
            use_authorization=deps.access_token is None,
        )
        return deps.clients.for_credential(request_value=api_key)

    return GatewayDependencies(
        get_deps=get_deps,
        require_access_token=require_access_token,
        require_apollo_client=require_apollo_client,
    )


__all__ = ["DepsProvider", "GatewayDependencies", "GatewayRouteDeps", "build_dependencies"]
