from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from fastapi import Request

from apollo_gateway.infrastructure.http.auth import CREDENTIAL_FIELDS

logger = logging.getLogger("apollo_gateway.http")

REDACTED = "***"


async def request_logging_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Any]],
) -> Any:
    request_id = request.headers.get("x-request-id", uuid4().hex)
    query_params = _redact_query(request.query_params.multi_items())
    log_data = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "query_params": query_params,
    }

    body_bytes = await request.body()
    logger.info("request_received", extra={"data": {**log_data, "body": _redact_body(body_bytes)}})

    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("request_failed", extra={"data": log_data})
        raise

    logger.info(
        "request_completed",
        extra={
            "data": {
                **log_data,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        },
    )
    return response


def _redact_query(items: list[tuple[str, str]]) -> list[tuple[str, str]]:
    return [(key, REDACTED if key in CREDENTIAL_FIELDS else value) for key, value in items]


def _redact_body(body: bytes, limit: int = 1024) -> str:
    if not body:
        return ""
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        return f"<binary data: {len(body)} bytes>"
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        decoded = None
    if isinstance(decoded, dict) and any(field in decoded for field in CREDENTIAL_FIELDS):
        text = json.dumps({key: REDACTED if key in CREDENTIAL_FIELDS else value for key, value in decoded.items()})
    if len(text) <= limit:
        return text
    return text[:limit] + "... (truncated)"


__all__ = ["request_logging_middleware"]
