"""Request models for the Apollo.io operations exposed by the gateway."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

PEOPLE_ENRICHMENT_IDENTIFIERS: tuple[str, ...] = (
    "first_name",
    "last_name",
    "email",
    "domain",
    "organization_name",
    "linkedin_url",
)


class IntegerRange(BaseModel):
    """Inclusive min/max filter on an integer attribute."""

    model_config = ConfigDict(extra="allow")

    min: int | None = Field(default=None, description="Lower bound (no currency symbols, commas, or decimals)")
    max: int | None = Field(default=None, description="Upper bound (no currency symbols, commas, or decimals)")


class DateRange(BaseModel):
    """Inclusive min/max filter on a YYYY-MM-DD date."""

    model_config = ConfigDict(extra="allow")

    min: str | None = Field(default=None, description="Earliest date (YYYY-MM-DD)")
    max: str | None = Field(default=None, description="Latest date (YYYY-MM-DD)")


class _ApolloRequest(BaseModel):
    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True, mode="json")


class PeopleEnrichmentRequest(_ApolloRequest):
    """Input for `people_enrichment`; at least one identifying field is required."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="allow")

    first_name: str | None = Field(default=None, description="Person's first name")
    last_name: str | None = Field(default=None, description="Person's last name")
    email: str | None = Field(default=None, description="Person's email address")
    domain: str | None = Field(default=None, description="Company domain")
    organization_name: str | None = Field(default=None, description="Organization name")
    linkedin_url: str | None = Field(default=None, description="Person's LinkedIn profile URL")

    def has_identifier(self) -> bool:
        return any(getattr(self, name) for name in PEOPLE_ENRICHMENT_IDENTIFIERS)


class OrganizationEnrichmentRequest(_ApolloRequest):
    """Input for `organization_enrichment`."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    domain: str = Field(
        ...,
        min_length=1,
        description=(
            "The domain of the company that you want to enrich. Do not include www., the @ symbol, "
            "or similar (e.g., 'apollo.io' or 'microsoft.com')"
        ),
    )


class PeopleSearchRequest(_ApolloRequest):
    """Filters for `people_search`; forwarded to Apollo.io verbatim."""

    model_config = ConfigDict(extra="allow")

    person_titles: list[str] | None = Field(
        default=None,
        description="Job titles held by the people you want to find (e.g., 'marketing manager')",
    )
    include_similar_titles: bool | None = Field(
        default=None, description="Whether to include people with similar job titles (default: true)"
    )
    q_keywords: str | None = Field(default=None, description="A string of words to filter the results")
    person_locations: list[str] | None = Field(
        default=None, description="The location where people live (e.g., 'california', 'ireland')"
    )
    person_seniorities: list[str] | None = Field(
        default=None,
        description="Job seniority levels (e.g., 'owner', 'founder', 'c_suite', 'vp', 'director', 'manager')",
    )
    organization_locations: list[str] | None = Field(
        default=None, description="Headquarters location of the person's current employer"
    )
    q_organization_domains_list: list[str] | None = Field(
        default=None, description="The domain name for the person's employer (e.g., 'apollo.io')"
    )
    contact_email_status: list[str] | None = Field(
        default=None, description="Email statuses to filter by (e.g., 'verified', 'unverified')"
    )
    organization_ids: list[str] | None = Field(
        default=None, description="Apollo IDs for specific companies (employers) to include"
    )
    organization_num_employees_ranges: list[str] | None = Field(
        default=None, description="Employee count ranges for the current company (e.g., '1,10', '250,500')"
    )
    revenue_range: IntegerRange | None = Field(
        default=None, description="Revenue range for the person's current employer"
    )
    currently_using_all_of_technology_uids: list[str] | None = Field(
        default=None, description="ALL technologies the current employer uses (e.g., 'salesforce')"
    )
    currently_using_any_of_technology_uids: list[str] | None = Field(
        default=None, description="ANY of the technologies the current employer uses"
    )
    currently_not_using_any_of_technology_uids: list[str] | None = Field(
        default=None, description="Technologies the current employer must not use"
    )
    q_organization_job_titles: list[str] | None = Field(
        default=None, description="Job titles in active job postings at the current employer"
    )
    organization_job_locations: list[str] | None = Field(
        default=None, description="Locations of jobs being actively recruited by the employer"
    )
    organization_num_jobs_range: IntegerRange | None = Field(
        default=None, description="Range for number of active job postings at the employer"
    )
    organization_job_posted_at_range: DateRange | None = Field(
        default=None, description="Date range for when jobs were posted by the employer"
    )
    page: int | None = Field(default=None, description="Page number for pagination (default: 1)")
    per_page: int | None = Field(
        default=None, description="Number of results per page (max: 100, default: 25)"
    )


class OrganizationSearchRequest(_ApolloRequest):
    """Filters for `organization_search`; forwarded to Apollo.io verbatim."""

    model_config = ConfigDict(extra="allow")

    q_organization_domains_list: list[str] | None = Field(
        default=None, description="List of organization domains to search for"
    )
    organization_locations: list[str] | None = Field(
        default=None, description="The location of the company headquarters (e.g., 'texas', 'tokyo')"
    )
    organization_not_locations: list[str] | None = Field(
        default=None, description="Exclude companies based on location (e.g., 'minnesota')"
    )
    organization_num_employees_ranges: list[str] | None = Field(
        default=None, description="Employee count ranges separated by comma (e.g., '1,10', '250,500')"
    )
    revenue_range: IntegerRange | None = Field(default=None, description="Revenue range of the organization")
    currently_using_any_of_technology_uids: list[str] | None = Field(
        default=None, description="Technologies the organization currently uses (e.g., 'google_analytics')"
    )
    q_organization_keyword_tags: list[str] | None = Field(
        default=None, description="Keywords associated with companies (e.g., 'mining', 'consulting')"
    )
    q_organization_name: str | None = Field(
        default=None, description="A specific company name (partial matches accepted)"
    )
    organization_ids: list[str] | None = Field(
        default=None, description="Apollo IDs for specific companies to include"
    )
    latest_funding_amount_range: IntegerRange | None = Field(
        default=None, description="Amount range of the most recent funding round"
    )
    total_funding_range: IntegerRange | None = Field(
        default=None, description="Total funding amount range across all rounds"
    )
    latest_funding_date_range: DateRange | None = Field(
        default=None, description="Date range of the most recent funding round"
    )
    q_organization_job_titles: list[str] | None = Field(
        default=None, description="Job titles in active job postings at the company"
    )
    organization_job_locations: list[str] | None = Field(
        default=None, description="Locations of jobs being actively recruited by the company"
    )
    organization_num_jobs_range: IntegerRange | None = Field(
        default=None, description="Range for number of active job postings at the company"
    )
    organization_job_posted_at_range: DateRange | None = Field(
        default=None, description="Date range for when jobs were posted by the company"
    )
    page: int | None = Field(default=None, description="Page number for pagination (default: 1)")
    per_page: int | None = Field(
        default=None, description="Number of results per page (max: 100, default: 25)"
    )


class OrganizationJobPostingsRequest(_ApolloRequest):
    """Input for `organization_job_postings`."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    organization_id: str = Field(..., min_length=1, description="Apollo.io organization ID")


class PersonEmailRequest(_ApolloRequest):
    """Input for `get_person_email`."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    apollo_id: str = Field(..., min_length=1, description="Apollo.io person ID")


class EmployeesOfCompanyRequest(_ApolloRequest):
    """Input for `employees_of_company`."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    company: str = Field(..., min_length=1, description="Company name")
    website_url: str | None = Field(default=None, description="Company website URL")
    linkedin_url: str | None = Field(default=None, description="Company LinkedIn URL")
    person_seniorities: list[str] | None = Field(
        default=None,
        description="Seniority filter, comma-separated (e.g., 'vp, director')",
    )
    contact_email_status: list[str] | None = Field(
        default=None,
        description="Email status filter, comma-separated (e.g., 'verified, likely to engage')",
    )

    @field_validator("person_seniorities", "contact_email_status", mode="before")
    @classmethod
    def _split_csv(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


__all__ = [
    "PEOPLE_ENRICHMENT_IDENTIFIERS",
    "DateRange",
    "IntegerRange",
    "PeopleEnrichmentRequest",
    "OrganizationEnrichmentRequest",
    "PeopleSearchRequest",
    "OrganizationSearchRequest",
    "OrganizationJobPostingsRequest",
    "PersonEmailRequest",
    "EmployeesOfCompanyRequest",
]
