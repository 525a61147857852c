"""Failure taxonomy shared by the backend client and every inbound surface."""

from __future__ import annotations

from collections.abc import Sequence

from apollo_gateway.json_types import JsonValue


class GatewayError(Exception):
    """Base class for gateway failures that callers can map to a wire shape."""

    error_type = "gateway_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, JsonValue]:
        """Extra structured fields surfaced alongside the message."""
        return {}


class ValidationError(GatewayError):
    """Raised when required input is missing or malformed; never reaches the backend."""

    error_type = "validation_error"

    def __init__(self, message: str, *, required: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.required = tuple(required)

    def details(self) -> dict[str, JsonValue]:
        if not self.required:
            return {}
        return {"required": list(self.required)}


class CredentialError(GatewayError):
    """Raised when the caller credential or server access token is missing or invalid."""

    error_type = "credential_error"

    def __init__(self, message: str, *, accepted: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.accepted = tuple(accepted)

    def details(self) -> dict[str, JsonValue]:
        if not self.accepted:
            return {}
        return {"accepted_methods": list(self.accepted)}


class NotFoundError(GatewayError):
    """Base class for lookups that resolved to nothing."""

    error_type = "not_found"


class SessionNotFoundError(NotFoundError):
    """Raised when a discrete message addresses a session that is not registered."""

    error_type = "session_not_found"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"session not found: {session_id}")
        self.session_id = session_id


class UnknownOperationError(NotFoundError):
    """Raised when an operation name is not present in the registry."""

    error_type = "unknown_operation"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name

    def details(self) -> dict[str, JsonValue]:
        return {"operation": self.name}


class OrganizationNotFoundError(NotFoundError):
    """Raised when an organization search for a company returns nothing usable."""

    error_type = "organization_not_found"

    def __init__(self, company: str, message: str | None = None) -> None:
        super().__init__(message or f"No organizations found for company '{company}'")
        self.company = company


class BackendError(GatewayError):
    """Raised when Apollo.io answered with a non-success status."""

    error_type = "backend_error"

    def __init__(self, operation: str, status_code: int, body: JsonValue) -> None:
        super().__init__(f"{operation} failed with status {status_code}: {_summarize(body)}")
        self.operation = operation
        self.status_code = status_code
        self.body = body

    def details(self) -> dict[str, JsonValue]:
        return {"status_code": self.status_code, "body": self.body}


class BackendTransportError(GatewayError):
    """Raised when the request to Apollo.io never completed."""

    error_type = "transport_error"

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"{operation} network error: {reason}")
        self.operation = operation
        self.reason = reason


class InternalError(GatewayError):
    """Raised for unexpected failures that do not fit another category."""

    error_type = "internal_error"


def _summarize(body: JsonValue, limit: int = 500) -> str:
    text = str(body)
    return text if len(text) <= limit else text[:limit] + "…"


__all__ = [
    "GatewayError",
    "ValidationError",
    "CredentialError",
    "NotFoundError",
    "SessionNotFoundError",
    "UnknownOperationError",
    "OrganizationNotFoundError",
    "BackendError",
    "BackendTransportError",
    "InternalError",
]
