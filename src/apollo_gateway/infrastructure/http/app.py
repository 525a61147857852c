"""FastAPI application assembly."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from apollo_gateway import __version__
from apollo_gateway.infrastructure.http.dependencies import GatewayRouteDeps, build_dependencies
from apollo_gateway.infrastructure.http.exception_handlers import install_exception_handlers
from apollo_gateway.infrastructure.http.mcp_routes import add_mcp_routes
from apollo_gateway.infrastructure.http.middleware import request_logging_middleware
from apollo_gateway.infrastructure.http.routes import add_health_routes, add_rest_routes
from apollo_gateway.runtime.bootstrap import RuntimeContext, close_runtime_resources

logger = logging.getLogger("apollo_gateway.http")


def route_deps(runtime: RuntimeContext) -> GatewayRouteDeps:
    settings = runtime.settings
    return GatewayRouteDeps(
        clients=runtime.clients,
        executor=runtime.executor,
        dispatcher=runtime.dispatcher,
        sessions=runtime.sessions,
        access_token=settings.access_token_value,
        server_name=settings.server_name,
        server_version=settings.server_version,
        sse_keepalive_seconds=settings.sse_keepalive_seconds,
    )


def create_app(runtime: RuntimeContext) -> FastAPI:
    deps = route_deps(runtime)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        del app
        logger.info(
            "gateway starting up",
            extra={"data": {"operations": list(runtime.operations.names())}},
        )
        yield
        runtime.shutdown.trigger("lifespan shutdown")
        await close_runtime_resources(runtime)
        logger.info("gateway shut down")

    app = FastAPI(title="Apollo.io Gateway", version=__version__, lifespan=lifespan)
    app.middleware("http")(request_logging_middleware)
    install_exception_handlers(app)

    dependencies = build_dependencies(lambda: deps)
    add_health_routes(app, dependencies)
    add_rest_routes(app, dependencies)
    add_mcp_routes(app, dependencies)
    return app


__all__ = ["create_app", "route_deps"]
