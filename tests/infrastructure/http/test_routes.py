from __future__ import annotations

import json

import httpx
from fastapi.testclient import TestClient

from apollo_gateway.runtime.bootstrap import ACCEPTED_CREDENTIAL_METHODS


def test_health_needs_no_credential_or_gateway_token(make_gateway) -> None:
    gateway = make_gateway(access_token="secret-token")

    response = TestClient(gateway.app).get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["active_sessions"] == 0
    assert body["server"] == "apollo-io-manager"
    assert "timestamp" in body


def test_list_tools_needs_no_credential_or_gateway_token(make_gateway) -> None:
    gateway = make_gateway(access_token="secret-token")

    response = TestClient(gateway.app).get("/api/tools")

    assert response.status_code == 200
    tools = response.json()["tools"]
    assert len(tools) == 7
    assert {"name", "description", "inputSchema"} <= set(tools[0])
    assert gateway.backend.requests == []


def test_missing_credential_returns_401_with_accepted_methods(make_gateway) -> None:
    gateway = make_gateway()

    response = TestClient(gateway.app).post("/api/people/search", json={"person_titles": ["cto"]})

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error"]["type"] == "credential_error"
    assert body["error"]["accepted_methods"] == list(ACCEPTED_CREDENTIAL_METHODS)
    assert gateway.backend.requests == []


def test_process_default_credential_is_used_when_request_has_none(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post("/api/people/search", json={"person_titles": ["cto"]})

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"ok": True}}
    request = gateway.backend.requests[0]
    assert request.headers["x-api-key"] == "default-key"
    assert json.loads(request.content) == {"person_titles": ["cto"]}


def test_request_credential_beats_process_default(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    TestClient(gateway.app).post(
        "/api/people/search",
        json={"person_titles": ["cto"]},
        headers={"X-Api-Key": "caller-key"},
    )

    assert gateway.backend.requests[0].headers["x-api-key"] == "caller-key"


def test_credential_header_order(make_gateway) -> None:
    gateway = make_gateway()
    client = TestClient(gateway.app)

    client.get(
        "/api/organizations/o1/job-postings",
        params={"api_key": "query-key"},
        headers={"X-Apollo-Api-Key": "apollo-header", "X-Api-Key": "generic-header"},
    )
    client.get("/api/organizations/o1/job-postings", headers={"Authorization": "ApiKey auth-key"})
    client.get("/api/organizations/o1/job-postings", params={"apollo_api_key": "query-key"})

    keys = [request.headers["x-api-key"] for request in gateway.backend.requests]
    assert keys == ["apollo-header", "auth-key", "query-key"]


def test_body_credential_is_used_and_not_forwarded(make_gateway) -> None:
    gateway = make_gateway()

    response = TestClient(gateway.app).post(
        "/api/organizations/enrich",
        json={"domain": "https://www.apollo.io/", "apollo_api_key": "body-key"},
    )

    assert response.status_code == 200
    request = gateway.backend.requests[0]
    assert request.headers["x-api-key"] == "body-key"
    assert request.url.params["domain"] == "apollo.io"


def test_gateway_token_is_required_when_configured(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key", access_token="secret-token")
    client = TestClient(gateway.app)

    missing = client.get("/api/people/p1/email")
    wrong = client.get("/api/people/p1/email", headers={"X-Gateway-Token": "nope"})

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert wrong.json()["error"]["message"] == "invalid gateway access token"
    assert gateway.backend.requests == []


def test_authorization_carries_gateway_token_not_apollo_key_when_token_configured(make_gateway) -> None:
    gateway = make_gateway(access_token="secret-token")
    gateway.backend.responses["/add_to_my_prospects"] = httpx.Response(
        200, json={"contacts": [{"email": "jane@acme.com"}]}
    )
    client = TestClient(gateway.app)

    without_key = client.get("/api/people/p1/email", headers={"Authorization": "Bearer secret-token"})
    with_key = client.get(
        "/api/people/p1/email",
        headers={"Authorization": "Bearer secret-token", "X-Api-Key": "caller-key"},
    )

    assert without_key.status_code == 401
    assert without_key.json()["error"]["type"] == "credential_error"
    assert with_key.status_code == 200
    assert with_key.json()["data"] == ["jane@acme.com"]
    assert gateway.backend.requests[0].headers["x-api-key"] == "caller-key"


def test_validation_error_returns_400_with_required_fields(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post("/api/employees-of-company", json={})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "validation_error"
    assert error["required"] == ["company"]
    assert gateway.backend.requests == []


def test_people_enrichment_without_identifier_returns_400(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post("/api/people/enrich", json={})

    assert response.status_code == 400
    assert "linkedin_url" in response.json()["error"]["required"]


def test_non_object_body_is_rejected(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post("/api/people/search", json=["cto"])

    assert response.status_code == 400


def test_organization_enrichment_by_query_normalizes_domain(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).get("/api/organizations/enrich", params={"domain": "HTTPS://WWW.Acme.com/"})

    assert response.status_code == 200
    assert gateway.backend.requests[0].url.params["domain"] == "acme.com"


def test_unknown_operation_returns_501(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post("/api/tools/does_not_exist", json={})

    assert response.status_code == 501
    error = response.json()["error"]
    assert error["type"] == "unknown_operation"
    assert error["operation"] == "does_not_exist"


def test_generic_tool_route_runs_operation(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")

    response = TestClient(gateway.app).post("/api/tools/organization_job_postings", json={"organization_id": "o1"})

    assert response.status_code == 200
    assert gateway.backend.requests[0].url.path.endswith("/organizations/o1/job_postings")


def test_organization_not_found_returns_404(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")
    gateway.backend.responses["/mixed_companies/search"] = httpx.Response(200, json={"organizations": []})

    response = TestClient(gateway.app).post("/api/employees-of-company", json={"company": "Ghost Co"})

    assert response.status_code == 404
    assert response.json()["error"]["type"] == "organization_not_found"
    assert len(gateway.backend.requests) == 1


def test_backend_failure_returns_500_with_upstream_status(make_gateway) -> None:
    gateway = make_gateway(api_key="default-key")
    gateway.backend.responses["/mixed_companies/search"] = httpx.Response(403, json={"error": "forbidden"})

    response = TestClient(gateway.app).post("/api/organizations/search", json={"q_organization_name": "Acme"})

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["type"] == "backend_error"
    assert error["status_code"] == 403
    assert error["body"] == {"error": "forbidden"}
