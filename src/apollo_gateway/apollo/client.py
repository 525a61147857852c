"""HTTP client adapter for the Apollo.io API."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from apollo_gateway.apollo.models import (
    PEOPLE_ENRICHMENT_IDENTIFIERS,
    EmployeesOfCompanyRequest,
    OrganizationSearchRequest,
    PeopleEnrichmentRequest,
    PeopleSearchRequest,
)
from apollo_gateway.config.settings import DEFAULT_APOLLO_APP_BASE_URL, DEFAULT_APOLLO_BASE_URL
from apollo_gateway.domain.urls import normalize_domain, urls_match
from apollo_gateway.errors import (
    BackendError,
    BackendTransportError,
    OrganizationNotFoundError,
    ValidationError,
)
from apollo_gateway.json_types import JsonValue

_LOGGER = logging.getLogger("apollo_gateway.apollo.calls")

API_KEY_HEADER = "x-api-key"
COMPANY_SEARCH_PAGE_SIZE = 100
EMPLOYEE_SEARCH_PAGE_SIZE = 100


class ApolloClient:
    """Async client for the Apollo.io endpoints behind the gateway operations.

    One instance carries one credential. The underlying ``httpx.AsyncClient`` may
    be shared between instances; it is only closed by the instance that created it.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_APOLLO_BASE_URL,
        app_base_url: str = DEFAULT_APOLLO_APP_BASE_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Apollo.io API key must be provided")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._app_base_url = app_base_url.rstrip("/")
        self._owns_client = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    # Operations ----------------------------------------------------------------------------------

    async def people_enrichment(self, request: PeopleEnrichmentRequest) -> JsonValue:
        if not request.has_identifier():
            raise ValidationError(
                "people_enrichment requires at least one identifying field",
                required=PEOPLE_ENRICHMENT_IDENTIFIERS,
            )
        return await self._post("people_enrichment", f"{self._base_url}/people/match", request.to_payload())

    async def organization_enrichment(self, domain: str) -> JsonValue:
        normalized = normalize_domain(domain)
        if normalized is None:
            raise ValidationError(
                f"could not derive a domain from {domain!r}",
                required=("domain",),
            )
        return await self._get(
            "organization_enrichment",
            f"{self._base_url}/organizations/enrich",
            params={"domain": normalized},
        )

    async def people_search(self, request: PeopleSearchRequest) -> JsonValue:
        return await self._post("people_search", f"{self._base_url}/mixed_people/search", request.to_payload())

    async def organization_search(self, request: OrganizationSearchRequest) -> JsonValue:
        return await self._post(
            "organization_search",
            f"{self._base_url}/mixed_companies/search",
            request.to_payload(),
        )

    async def organization_job_postings(self, organization_id: str) -> JsonValue:
        if not organization_id or not organization_id.strip():
            raise ValidationError("organization ID is required", required=("organization_id",))
        return await self._get(
            "organization_job_postings",
            f"{self._base_url}/organizations/{organization_id.strip()}/job_postings",
        )

    async def get_person_email(self, apollo_id: str) -> list[str]:
        if not apollo_id or not apollo_id.strip():
            raise ValidationError("Apollo ID is required", required=("apollo_id",))
        payload = {
            "entity_ids": [apollo_id.strip()],
            "analytics_context": "Searcher: Individual Add Button",
            "skip_fetching_people": True,
            "cta_name": "Access email",
            "cacheKey": int(time.time() * 1000),
        }
        data = await self._post(
            "get_person_email",
            f"{self._app_base_url}/mixed_people/add_to_my_prospects",
            payload,
        )
        contacts = data.get("contacts") if isinstance(data, Mapping) else None
        if not isinstance(contacts, list):
            return []
        return [
            contact["email"]
            for contact in contacts
            if isinstance(contact, Mapping) and isinstance(contact.get("email"), str)
        ]

    async def employees_of_company(self, request: EmployeesOfCompanyRequest) -> JsonValue:
        organization_id = await self._resolve_organization_id(request)

        people_payload: dict[str, Any] = {
            "organization_ids": [organization_id],
            "page": 1,
            "per_page": EMPLOYEE_SEARCH_PAGE_SIZE,
        }
        if request.person_seniorities:
            people_payload["person_seniorities"] = list(request.person_seniorities)
        if request.contact_email_status:
            people_payload["contact_email_status_v2"] = list(request.contact_email_status)

        data = await self._post(
            "employees_of_company",
            f"{self._base_url}/mixed_people/search",
            people_payload,
        )
        people = data.get("people") if isinstance(data, Mapping) else None
        return people if isinstance(people, list) else []

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # internal

    async def _resolve_organization_id(self, request: EmployeesOfCompanyRequest) -> str:
        data = await self._post(
            "employees_of_company",
            f"{self._base_url}/mixed_companies/search",
            {
                "q_organization_name": request.company,
                "page": 1,
                "per_page": COMPANY_SEARCH_PAGE_SIZE,
            },
        )
        organizations = data.get("organizations") if isinstance(data, Mapping) else None
        if not isinstance(organizations, list):
            organizations = []
        candidates = [org for org in organizations if isinstance(org, Mapping)]
        if not candidates:
            raise OrganizationNotFoundError(request.company)

        selected = next(
            (org for org in candidates if _matches_company_urls(org, request)),
            candidates[0],
        )
        organization_id = selected.get("id")
        if not isinstance(organization_id, str) or not organization_id:
            raise OrganizationNotFoundError(
                request.company,
                f"Could not determine company ID for '{request.company}'",
            )
        return organization_id

    async def _get(
        self,
        operation: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> JsonValue:
        return await self._request(operation, "GET", url, params=params)

    async def _post(self, operation: str, url: str, payload: Mapping[str, Any]) -> JsonValue:
        return await self._request(operation, "POST", url, json_payload=payload)

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        *,
        json_payload: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> JsonValue:
        headers = {
            API_KEY_HEADER: self._api_key,
            "Content-Type": "application/json",
            "Cache-Control": "no-cache",
        }
        start = time.perf_counter()
        try:
            response = await self._client.request(
                method,
                url,
                headers=headers,
                json=dict(json_payload) if json_payload is not None else None,
                params=dict(params) if params is not None else None,
            )
        except httpx.HTTPError as exc:
            _LOGGER.warning(
                "apollo.request.transport_error",
                extra={
                    "data": {
                        "operation": operation,
                        "method": method,
                        "url": url,
                        "error": f"{exc.__class__.__name__}: {exc}",
                    }
                },
            )
            raise BackendTransportError(operation, str(exc) or exc.__class__.__name__) from exc

        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        body = _decode_body(response)
        if not response.is_success:
            _LOGGER.warning(
                "apollo.request.failed",
                extra={
                    "data": {
                        "operation": operation,
                        "method": method,
                        "url": url,
                        "status_code": response.status_code,
                        "latency_ms": latency_ms,
                    }
                },
            )
            raise BackendError(operation, response.status_code, body)

        _LOGGER.info(
            "apollo.request.complete",
            extra={
                "data": {
                    "operation": operation,
                    "method": method,
                    "url": url,
                    "status_code": response.status_code,
                    "latency_ms": latency_ms,
                }
            },
        )
        return body


def _decode_body(response: httpx.Response) -> JsonValue:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _matches_company_urls(organization: Mapping[str, Any], request: EmployeesOfCompanyRequest) -> bool:
    if request.linkedin_url and urls_match(request.linkedin_url, organization.get("linkedin_url")):
        return True
    if request.website_url and urls_match(request.website_url, organization.get("website_url")):
        return True
    return False


__all__ = ["ApolloClient", "API_KEY_HEADER"]