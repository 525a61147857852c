from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from apollo_gateway.infrastructure.http.middleware import request_logging_middleware


def test_request_logging_middleware_redacts_credentials(caplog) -> None:
    app = FastAPI()
    app.middleware("http")(request_logging_middleware)

    @app.post("/api/people/search")
    async def search() -> dict[str, bool]:
        return {"ok": True}

    caplog.set_level(logging.INFO, logger="apollo_gateway.http")

    response = TestClient(app).post(
        "/api/people/search",
        params=[("api_key", "query-secret"), ("page", "2")],
        json={"apollo_api_key": "body-secret", "person_titles": ["cto"]},
    )

    assert response.status_code == 200
    records = [record for record in caplog.records if record.name == "apollo_gateway.http"]
    received = next(record for record in records if record.msg == "request_received")
    completed = next(record for record in records if record.msg == "request_completed")

    assert received.data["query_params"] == [("api_key", "***"), ("page", "2")]
    assert "body-secret" not in received.data["body"]
    assert "person_titles" in received.data["body"]
    assert completed.data["status_code"] == 200
    assert completed.data["path"] == "/api/people/search"
    assert "duration_ms" in completed.data


def test_request_logging_middleware_truncates_large_bodies(caplog) -> None:
    app = FastAPI()
    app.middleware("http")(request_logging_middleware)

    @app.post("/mcp")
    async def rpc() -> dict[str, bool]:
        return {"ok": True}

    caplog.set_level(logging.INFO, logger="apollo_gateway.http")

    TestClient(app).post("/mcp", content="y" * 2000)

    received = next(record for record in caplog.records if record.msg == "request_received")
    assert received.data["body"].startswith("y" * 1024)
    assert received.data["body"].endswith("... (truncated)")
