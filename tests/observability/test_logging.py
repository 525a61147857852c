from __future__ import annotations

import json
import logging
from dataclasses import dataclass

import pytest

from apollo_gateway.observability.logging import (
    STDERR_STREAM,
    ExtrasFormatter,
    build_log_config,
    json_safe,
)


@dataclass
class _Point:
    x: int
    y: int


def _record(data: object | None) -> logging.LogRecord:
    record = logging.LogRecord("apollo_gateway.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    if data is not None:
        record.data = data
    return record


def test_formatter_appends_compact_data(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("K_SERVICE", raising=False)
    monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
    formatter = ExtrasFormatter("%(name)s: %(message)s")

    line = formatter.format(_record({"b": 2, "a": b"xyz"}))

    assert line == 'apollo_gateway.test: hello world | data={"a":"<3 bytes>","b":2}'
    assert formatter.format(_record(None)) == "apollo_gateway.test: hello world"


def test_formatter_emits_json_lines_on_container_platforms(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("K_SERVICE", "gateway")
    formatter = ExtrasFormatter("%(message)s")

    payload = json.loads(formatter.format(_record({"point": _Point(1, 2)})))

    assert payload["message"] == "hello world"
    assert payload["severity"] == "INFO"
    assert payload["logger"] == "apollo_gateway.test"
    assert payload["data"] == {"point": {"x": 1, "y": 2}}


def test_json_safe_bounds_collections() -> None:
    assert json_safe(list(range(5)), max_items=2) == [0, 1, "<3 more>"]
    assert json_safe({"a": object()})["a"].startswith("<object object")


def test_build_log_config_routes_console_to_requested_stream(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HTTPX_LOG_LEVEL", "debug")

    config = build_log_config(stream=STDERR_STREAM)

    assert config["handlers"]["console"]["stream"] == STDERR_STREAM
    assert config["loggers"]["httpx"]["level"] == "DEBUG"
    assert config["loggers"]["uvicorn.access"]["propagate"] is False
