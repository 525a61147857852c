"""Runtime wiring for the gateway."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from apollo_gateway.apollo.client import ApolloClient
from apollo_gateway.config.settings import Settings
from apollo_gateway.errors import CredentialError
from apollo_gateway.infrastructure.state.session_registry import InMemorySessionRegistry
from apollo_gateway.rpc.dispatcher import RpcDispatcher
from apollo_gateway.runtime.lifecycle import ShutdownHook
from apollo_gateway.tools.catalog import build_operation_registry
from apollo_gateway.tools.registry import OperationExecutor, OperationRegistry

logger = logging.getLogger("apollo_gateway.runtime")

ACCEPTED_CREDENTIAL_METHODS: tuple[str, ...] = (
    "X-Apollo-Api-Key header",
    "X-Api-Key header",
    "Authorization header (Bearer <key>, ApiKey <key>, or the raw key)",
    "apollo_api_key or api_key query parameter",
    "apollo_api_key or api_key field in the JSON body",
    "APOLLO_IO_API_KEY environment variable on the server",
)


class ApolloClientFactory:
    """Builds per-credential Apollo.io clients over one shared connection pool."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http_client = http_client

    @property
    def default_api_key(self) -> str | None:
        return self._settings.apollo_api_key_value

    def resolve_api_key(self, *, explicit: str | None = None, request_value: str | None = None) -> str | None:
        for candidate in (explicit, request_value, self.default_api_key):
            if candidate is not None and candidate.strip():
                return candidate.strip()
        return None

    def for_credential(self, *, explicit: str | None = None, request_value: str | None = None) -> ApolloClient:
        api_key = self.resolve_api_key(explicit=explicit, request_value=request_value)
        if api_key is None:
            raise CredentialError("Apollo.io API key required", accepted=ACCEPTED_CREDENTIAL_METHODS)
        return ApolloClient(
            api_key=api_key,
            base_url=self._settings.apollo_base_url,
            app_base_url=self._settings.apollo_app_base_url,
            client=self._http_client,
        )


@dataclass(frozen=True, slots=True)
class RuntimeContext:
    """Aggregated runtime components for the gateway process."""

    settings: Settings
    http_client: httpx.AsyncClient
    clients: ApolloClientFactory
    operations: OperationRegistry
    executor: OperationExecutor
    dispatcher: RpcDispatcher
    sessions: InMemorySessionRegistry
    shutdown: ShutdownHook


def build_runtime(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RuntimeContext:
    http_client = httpx.AsyncClient(timeout=settings.apollo_timeout_seconds, transport=transport)
    operations = build_operation_registry()
    executor = OperationExecutor(operations)
    sessions = InMemorySessionRegistry()
    dispatcher = RpcDispatcher(
        executor,
        server_name=settings.server_name,
        server_version=settings.server_version,
    )
    logger.info(
        "runtime built",
        extra={
            "data": {
                "operations": list(operations.names()),
                "default_credential": settings.apollo_api_key_value is not None,
                "access_token_required": settings.access_token_value is not None,
            }
        },
    )
    return RuntimeContext(
        settings=settings,
        http_client=http_client,
        clients=ApolloClientFactory(settings, http_client),
        operations=operations,
        executor=executor,
        dispatcher=dispatcher,
        sessions=sessions,
        shutdown=ShutdownHook(sessions),
    )


async def close_runtime_resources(runtime: RuntimeContext) -> None:
    """Release the shared connection pool."""
    await runtime.http_client.aclose()


__all__ = [
    "ACCEPTED_CREDENTIAL_METHODS",
    "ApolloClientFactory",
    "RuntimeContext",
    "build_runtime",
    "close_runtime_resources",
]
