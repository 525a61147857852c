"""Inbound credential handling for HTTP requests."""

from __future__ import annotations

import json
import secrets
from collections.abc import Mapping

from fastapi import Request
from fastapi.security import APIKeyHeader

from apollo_gateway.errors import CredentialError
from apollo_gateway.json_types import JsonValue

APOLLO_KEY_HEADERS: tuple[str, ...] = ("x-apollo-api-key", "x-api-key")
CREDENTIAL_FIELDS: tuple[str, ...] = ("apollo_api_key", "api_key")
GATEWAY_TOKEN_HEADER = "x-gateway-token"
ACCEPTED_TOKEN_METHODS: tuple[str, ...] = (
    "Authorization header (Bearer <token>)",
    "X-Gateway-Token header",
)

APOLLO_KEY_SCHEME = APIKeyHeader(name="X-Apollo-Api-Key", scheme_name="ApolloApiKey", auto_error=False)
GATEWAY_TOKEN_SCHEME = APIKeyHeader(name="X-Gateway-Token", scheme_name="GatewayToken", auto_error=False)

_AUTH_SCHEMES = ("bearer", "apikey")


def extract_api_key(
    headers: Mapping[str, str],
    query: Mapping[str, str],
    body: JsonValue,
    *,
    use_authorization: bool = True,
) -> str | None:
    """Return the first Apollo.io key supplied with a request.

    Sources in order: dedicated headers, ``Authorization``, query parameters,
    then top-level JSON body fields.
    """
    for header in APOLLO_KEY_HEADERS:
        value = _clean(headers.get(header))
        if value:
            return value

    if use_authorization:
        value = _authorization_credential(headers.get("authorization"))
        if value:
            return value

    for field in CREDENTIAL_FIELDS:
        value = _clean(query.get(field))
        if value:
            return value

    if isinstance(body, dict):
        for field in CREDENTIAL_FIELDS:
            candidate = body.get(field)
            value = _clean(candidate) if isinstance(candidate, str) else None
            if value:
                return value
    return None


def strip_credentials(arguments: Mapping[str, JsonValue]) -> dict[str, JsonValue]:
    return {key: value for key, value in arguments.items() if key not in CREDENTIAL_FIELDS}


def verify_access_token(headers: Mapping[str, str], expected: str | None) -> None:
    """Raise ``CredentialError`` unless the gateway token matches ``expected``."""
    if expected is None:
        return
    supplied = _clean(headers.get(GATEWAY_TOKEN_HEADER))
    if supplied is None:
        authorization = _clean(headers.get("authorization"))
        if authorization:
            scheme, _, token = authorization.partition(" ")
            if scheme.lower() == "bearer":
                supplied = _clean(token)
    if supplied is None:
        raise CredentialError("gateway access token required", accepted=ACCEPTED_TOKEN_METHODS)
    if not secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        raise CredentialError("invalid gateway access token", accepted=ACCEPTED_TOKEN_METHODS)


async def read_json_body(request: Request) -> JsonValue:
    """Decode the request body; empty or undecodable bodies yield ``None``."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


def _authorization_credential(header: str | None) -> str | None:
    value = _clean(header)
    if value is None:
        return None
    scheme, _, remainder = value.partition(" ")
    if scheme.lower() in _AUTH_SCHEMES:
        return _clean(remainder)
    return value


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


__all__ = [
    "ACCEPTED_TOKEN_METHODS",
    "APOLLO_KEY_HEADERS",
    "APOLLO_KEY_SCHEME",
    "CREDENTIAL_FIELDS",
    "GATEWAY_TOKEN_HEADER",
    "GATEWAY_TOKEN_SCHEME",
    "extract_api_key",
    "read_json_body",
    "strip_credentials",
    "verify_access_token",
]
