"""Translate gateway failures into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from apollo_gateway.errors import (
    CredentialError,
    GatewayError,
    NotFoundError,
    UnknownOperationError,
    ValidationError,
)
from apollo_gateway.json_types import JsonObject

logger = logging.getLogger("apollo_gateway.http")


def status_for(exc: GatewayError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, CredentialError):
        return 401
    if isinstance(exc, UnknownOperationError):
        return 501
    if isinstance(exc, NotFoundError):
        return 404
    return 500


def error_body(exc: GatewayError) -> JsonObject:
    return {
        "success": False,
        "error": {"type": exc.error_type, "message": exc.message, **exc.details()},
    }


async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(
        "request rejected",
        extra={
            "data": {
                "path": request.url.path,
                "status_code": status_code,
                "error_type": exc.error_type,
                "error": exc.message,
            }
        },
    )
    return JSONResponse(status_code=status_code, content=error_body(exc))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    del request
    problems = []
    required = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
        if error.get("type") == "missing" and error.get("loc"):
            required.append(str(error["loc"][-1]))
    return JSONResponse(
        status_code=400,
        content=error_body(ValidationError("; ".join(problems) or "invalid request", required=required)),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, _gateway_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]


__all__ = ["error_body", "install_exception_handlers", "status_for"]
