"""REST and health routes for the gateway API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from fastapi import Depends, FastAPI, Request

from apollo_gateway.apollo.client import ApolloClient
from apollo_gateway.errors import GatewayError, InternalError, ValidationError
from apollo_gateway.infrastructure.http.auth import strip_credentials
from apollo_gateway.infrastructure.http.dependencies import GatewayDependencies, GatewayRouteDeps
from apollo_gateway.infrastructure.http.schemas import (
    HealthResponse,
    OperationListResponse,
    OperationModel,
    SuccessResponse,
)
from apollo_gateway.json_types import JsonValue

logger = logging.getLogger("apollo_gateway.http")


def add_health_routes(app: FastAPI, dependencies: GatewayDependencies) -> None:
    get_deps = dependencies.get_deps

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
        description="Liveness probe; needs neither a credential nor the gateway token.",
    )
    def health(deps: GatewayRouteDeps = Depends(get_deps)) -> HealthResponse:  # noqa: B008
        return HealthResponse(
            status="ok",
            server=deps.server_name,
            version=deps.server_version,
            active_sessions=len(deps.sessions),
            timestamp=datetime.now(UTC).isoformat(),
        )


def add_rest_routes(app: FastAPI, dependencies: GatewayDependencies) -> None:
    get_deps = dependencies.get_deps
    require_client = dependencies.require_apollo_client

    @app.get(
        "/api/tools",
        response_model=OperationListResponse,
        tags=["tools"],
        description="List every operation with its input schema.",
    )
    def list_operations(deps: GatewayRouteDeps = Depends(get_deps)) -> OperationListResponse:  # noqa: B008
        return OperationListResponse(
            tools=[
                OperationModel(
                    name=descriptor.name,
                    description=descriptor.description,
                    inputSchema=descriptor.input_schema(),
                )
                for descriptor in deps.executor.registry.list()
            ]
        )

    @app.post(
        "/api/tools/{name}",
        response_model=SuccessResponse,
        tags=["tools"],
        description="Run any registered operation with a JSON object of arguments.",
    )
    async def call_operation(
        name: str,
        request: Request,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> SuccessResponse:
        arguments = await _body_arguments(request)
        return await _run(deps, name, arguments, client)

    @app.post("/api/people/enrich", response_model=SuccessResponse, tags=["people"])
    async def people_enrichment(
        request: Request,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> SuccessResponse:
        return await _run(deps, "people_enrichment", await _body_arguments(request), client)

    @app.get("/api/organizations/enrich", response_model=SuccessResponse, tags=["organizations"])
    async def organization_enrichment_by_query(
        domain: str | None = None,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> SuccessResponse:
        arguments = {"domain": domain} if domain else {}
        return await _run(deps, "organization_enrichment", arguments, client)

    @app.post("/api/organizations/enrich", response_model=SuccessResponse, tags=["organizations"])
    async def organization_enrichment(
        request: Request,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> SuccessResponse:
        return await _run(deps, "organization_enrichment", await _body_arguments(request), client)

    @app.post("/api/people/search", response_model=SuccessResponse, tags=["people"])
    async def people_search(
        request: Request,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> SuccessResponse:
        return await _run(deps, "people_search", await _body_arguments(request), client)

    @app.post("/api/organizations/search", response_model=SuccessResponse, tags=["organizations"])
    async def organization_search(
        request: Request,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> SuccessResponse:
        return await _run(deps, "organization_search", await _body_arguments(request), client)

    @app.get(
        "/api/organizations/{organization_id}/job-postings",
        response_model=SuccessResponse,
        tags=["organizations"],
    )
    async def organization_job_postings(
        organization_id: str,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> SuccessResponse:
        return await _run(deps, "organization_job_postings", {"organization_id": organization_id}, client)

    @app.get("/api/people/{apollo_id}/email", response_model=SuccessResponse, tags=["people"])
    async def person_email(
        apollo_id: str,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> SuccessResponse:
        return await _run(deps, "get_person_email", {"apollo_id": apollo_id}, client)

    @app.post("/api/employees-of-company", response_model=SuccessResponse, tags=["organizations"])
    async def employees_of_company(
        request: Request,
        deps: GatewayRouteDeps = Depends(get_deps),  # noqa: B008
        client: ApolloClient = Depends(require_client),  # noqa: B008
    ) -> SuccessResponse:
        return await _run(deps, "employees_of_company", await _body_arguments(request), client)


# --- Helpers ---


async def _run(
    deps: GatewayRouteDeps,
    name: str,
    arguments: Mapping[str, Any],
    client: ApolloClient,
) -> SuccessResponse:
    try:
        result = await deps.executor.execute(name, arguments, client)
    except GatewayError:
        raise
    except Exception as exc:
        logger.exception("operation raised unexpectedly", extra={"data": {"operation": name}})
        raise InternalError(f"{name} failed: {exc}") from exc
    return SuccessResponse(data=result)


async def _body_arguments(request: Request) -> dict[str, JsonValue]:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError(f"request body is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    return strip_credentials(payload)


__all__ = ["add_health_routes", "add_rest_routes"]
