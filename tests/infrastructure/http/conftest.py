from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
import pytest
from fastapi import FastAPI

from apollo_gateway.config.settings import Settings
from apollo_gateway.infrastructure.http.app import create_app
from apollo_gateway.runtime.bootstrap import RuntimeContext, build_runtime

BASE_URL = "https://api.apollo.test/api/v1"
APP_BASE_URL = "https://app.apollo.test/api/v1"


@dataclass
class FakeApollo:
    """Records backend requests and replays canned responses keyed by path suffix."""

    responses: dict[str, httpx.Response] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, response in self.responses.items():
            if request.url.path.endswith(suffix):
                return httpx.Response(response.status_code, content=response.content, headers=response.headers)
        return httpx.Response(200, json={"ok": True})


@dataclass
class GatewayHarness:
    app: FastAPI
    runtime: RuntimeContext
    backend: FakeApollo


MakeGateway = Callable[..., GatewayHarness]


@pytest.fixture
def make_gateway() -> MakeGateway:
    def _make(*, api_key: str | None = None, access_token: str | None = None) -> GatewayHarness:
        backend = FakeApollo()
        settings = Settings(
            _env_file=None,
            APOLLO_IO_API_KEY=api_key,
            GATEWAY_ACCESS_TOKEN=access_token,
            APOLLO_BASE_URL=BASE_URL,
            APOLLO_APP_BASE_URL=APP_BASE_URL,
            SSE_KEEPALIVE_SECONDS=30,
        )
        runtime = build_runtime(settings, transport=httpx.MockTransport(backend))
        return GatewayHarness(app=create_app(runtime), runtime=runtime, backend=backend)

    return _make
