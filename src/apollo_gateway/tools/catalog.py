"""The fixed set of Apollo.io operations offered on every surface."""

from __future__ import annotations

from apollo_gateway.apollo.client import ApolloClient
from apollo_gateway.apollo.models import (
    EmployeesOfCompanyRequest,
    OrganizationEnrichmentRequest,
    OrganizationJobPostingsRequest,
    OrganizationSearchRequest,
    PeopleEnrichmentRequest,
    PeopleSearchRequest,
    PersonEmailRequest,
)
from apollo_gateway.json_types import JsonValue
from apollo_gateway.tools.registry import OperationDescriptor, OperationRegistry


async def _people_enrichment(client: ApolloClient, request: PeopleEnrichmentRequest) -> JsonValue:
    return await client.people_enrichment(request)


async def _organization_enrichment(client: ApolloClient, request: OrganizationEnrichmentRequest) -> JsonValue:
    return await client.organization_enrichment(request.domain)


async def _people_search(client: ApolloClient, request: PeopleSearchRequest) -> JsonValue:
    return await client.people_search(request)


async def _organization_search(client: ApolloClient, request: OrganizationSearchRequest) -> JsonValue:
    return await client.organization_search(request)


async def _organization_job_postings(client: ApolloClient, request: OrganizationJobPostingsRequest) -> JsonValue:
    return await client.organization_job_postings(request.organization_id)


async def _get_person_email(client: ApolloClient, request: PersonEmailRequest) -> JsonValue:
    return list(await client.get_person_email(request.apollo_id))


async def _employees_of_company(client: ApolloClient, request: EmployeesOfCompanyRequest) -> JsonValue:
    return await client.employees_of_company(request)


OPERATIONS: tuple[OperationDescriptor, ...] = (
    OperationDescriptor(
        name="people_enrichment",
        description=(
            "Use the People Enrichment endpoint to enrich data for 1 person, "
            "at least one parameter is required."
        ),
        input_model=PeopleEnrichmentRequest,
        handler=_people_enrichment,
    ),
    OperationDescriptor(
        name="organization_enrichment",
        description="Use the Organization Enrichment endpoint to enrich data for 1 company",
        input_model=OrganizationEnrichmentRequest,
        handler=_organization_enrichment,
    ),
    OperationDescriptor(
        name="people_search",
        description=(
            "Use the People Search endpoint to find people with comprehensive filtering options, "
            "at least one parameter is required."
        ),
        input_model=PeopleSearchRequest,
        handler=_people_search,
    ),
    OperationDescriptor(
        name="organization_search",
        description=(
            "Use the Organization Search endpoint to find organizations with comprehensive filtering "
            "options, at least one parameter is required."
        ),
        input_model=OrganizationSearchRequest,
        handler=_organization_search,
    ),
    OperationDescriptor(
        name="organization_job_postings",
        description=(
            "Use the Organization Job Postings endpoint to find job postings for a specific organization"
        ),
        input_model=OrganizationJobPostingsRequest,
        handler=_organization_job_postings,
    ),
    OperationDescriptor(
        name="get_person_email",
        description="Get email address for a person using their Apollo ID",
        input_model=PersonEmailRequest,
        handler=_get_person_email,
    ),
    OperationDescriptor(
        name="employees_of_company",
        description="Find employees of a company using company name or website/LinkedIn URL",
        input_model=EmployeesOfCompanyRequest,
        handler=_employees_of_company,
    ),
)


def build_operation_registry() -> OperationRegistry:
    return OperationRegistry(OPERATIONS)


__all__ = ["OPERATIONS", "build_operation_registry"]
