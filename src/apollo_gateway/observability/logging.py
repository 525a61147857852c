"""Logging setup: one console handler, structured ``data`` extras rendered as JSON."""

from __future__ import annotations

import json
import logging
import os
import traceback
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from logging.config import dictConfig
from typing import Any

STDOUT_STREAM = "ext://sys.stdout"
STDERR_STREAM = "ext://sys.stderr"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# logger name -> (level env var, default level)
_LOGGER_LEVELS: dict[str, tuple[str, str]] = {
    "uvicorn": ("UVICORN_LOG_LEVEL", "INFO"),
    "uvicorn.error": ("UVICORN_LOG_LEVEL", "INFO"),
    "uvicorn.access": ("UVICORN_ACCESS_LOG_LEVEL", "WARNING"),
    "httpx": ("HTTPX_LOG_LEVEL", "WARNING"),
    "httpcore": ("HTTPX_LOG_LEVEL", "WARNING"),
    "apollo_gateway.apollo.calls": ("APOLLO_LOG_LEVEL", "INFO"),
}


def _env_level(name: str, default: str) -> str:
    return os.getenv(name, default).strip().upper() or default


def _json_lines_enabled() -> bool:
    # Container platforms ingest one JSON object per line.
    return bool(os.getenv("K_SERVICE") or os.getenv("KUBERNETES_SERVICE_HOST"))


def json_safe(value: Any, *, depth: int = 8, max_items: int = 100) -> Any:
    """Return a JSON-encodable copy of ``value``; unknown objects become strings."""
    if depth <= 0:
        return "<nested too deep>"
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if is_dataclass(value) and not isinstance(value, type):
        return json_safe(asdict(value), depth=depth - 1, max_items=max_items)
    if isinstance(value, Mapping):
        items = list(value.items())
        safe = {str(key): json_safe(item, depth=depth - 1, max_items=max_items) for key, item in items[:max_items]}
        if len(items) > max_items:
            safe["<omitted>"] = len(items) - max_items
        return safe
    if isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
        safe_items = [json_safe(item, depth=depth - 1, max_items=max_items) for item in items[:max_items]]
        if len(items) > max_items:
            safe_items.append(f"<{len(items) - max_items} more>")
        return safe_items
    return str(value)


class ExtrasFormatter(logging.Formatter):
    """Append ``extra={"data": ...}`` to the line, or emit JSON lines on container platforms."""

    def format(self, record: logging.LogRecord) -> str:
        data = record.__dict__.get("data")
        if _json_lines_enabled():
            return json.dumps(self._payload(record, data), sort_keys=True, separators=(",", ":"))
        line = super().format(record)
        if not data:
            return line
        return f"{line} | data={json.dumps(json_safe(data), sort_keys=True, separators=(',', ':'))}"

    def _payload(self, record: logging.LogRecord, data: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "timestamp": self.formatTime(record, DATE_FORMAT) + f".{int(record.msecs):03d}Z",
        }
        if data:
            payload["data"] = json_safe(data)
        if record.exc_info:
            payload["exception"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return payload


def build_log_config(
    *,
    stream: str = STDOUT_STREAM,
    root_level_env: str = "LOG_LEVEL",
    root_default: str = "INFO",
) -> dict[str, Any]:
    """Return a ``dictConfig`` mapping with a single console handler on ``stream``."""
    loggers = {
        name: {"level": _env_level(env, default), "handlers": ["console"], "propagate": False}
        for name, (env, default) in _LOGGER_LEVELS.items()
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"()": ExtrasFormatter, "format": LOG_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "console", "stream": stream},
        },
        "root": {"level": _env_level(root_level_env, root_default), "handlers": ["console"]},
        "loggers": loggers,
    }


def configure_logging(*, stream: str = STDOUT_STREAM) -> None:
    """Apply the gateway logging config.

    The stdio entrypoint passes ``STDERR_STREAM`` because stdout carries protocol frames.
    """
    dictConfig(build_log_config(stream=stream))
    logging.getLogger("apollo_gateway.observability").debug(
        "logging configured",
        extra={"data": {"stream": stream}},
    )


__all__ = [
    "ExtrasFormatter",
    "STDERR_STREAM",
    "STDOUT_STREAM",
    "build_log_config",
    "configure_logging",
    "json_safe",
]
