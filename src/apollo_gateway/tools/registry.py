"""Immutable table of gateway operations and the executor that runs them."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

import pydantic
from mcp import types as mcp_types
from pydantic import BaseModel

from apollo_gateway.apollo.client import ApolloClient
from apollo_gateway.errors import UnknownOperationError, ValidationError
from apollo_gateway.json_types import JsonObject, JsonValue

OperationHandler = Callable[[ApolloClient, Any], Awaitable[JsonValue]]

tool_logger = logging.getLogger("apollo_gateway.tools")


@dataclass(frozen=True, slots=True)
class OperationDescriptor:
    """One named callable action backed by a single Apollo.io interaction pattern."""

    name: str
    description: str
    input_model: type[BaseModel]
    handler: OperationHandler

    def input_schema(self) -> JsonObject:
        schema: JsonObject = self.input_model.model_json_schema()
        schema.pop("title", None)
        schema.pop("description", None)
        schema.pop("additionalProperties", None)
        return schema

    def required_fields(self) -> tuple[str, ...]:
        return tuple(name for name, field in self.input_model.model_fields.items() if field.is_required())

    def to_tool(self) -> mcp_types.Tool:
        return mcp_types.Tool(name=self.name, description=self.description, inputSchema=self.input_schema())


class OperationRegistry:
    """Process-wide operation table; built once and never mutated."""

    def __init__(self, descriptors: Iterable[OperationDescriptor]) -> None:
        table: dict[str, OperationDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in table:
                raise ValueError(f"operation {descriptor.name!r} is already registered")
            table[descriptor.name] = descriptor
        self._operations: Mapping[str, OperationDescriptor] = dict(table)

    def lookup(self, name: str) -> OperationDescriptor:
        try:
            return self._operations[name]
        except KeyError:
            raise UnknownOperationError(name) from None

    def list(self) -> tuple[OperationDescriptor, ...]:
        return tuple(self._operations.values())

    def names(self) -> tuple[str, ...]:
        return tuple(self._operations)

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __iter__(self) -> Iterator[OperationDescriptor]:
        return iter(self._operations.values())

    def __len__(self) -> int:
        return len(self._operations)


class OperationExecutor:
    """Validates argument bags and runs registered operations against a client."""

    def __init__(self, registry: OperationRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> OperationRegistry:
        return self._registry

    async def execute(
        self,
        name: str,
        arguments: Mapping[str, Any] | None,
        client: ApolloClient,
    ) -> JsonValue:
        descriptor = self._registry.lookup(name)
        request = parse_arguments(descriptor, arguments)
        log_data = {"operation": name, "arguments": sorted((arguments or {}).keys())}
        tool_logger.info("operation started", extra={"data": log_data})
        start = time.perf_counter()
        try:
            result = await descriptor.handler(client, request)
        except Exception as exc:
            tool_logger.warning(
                "operation failed",
                extra={
                    "data": {
                        **log_data,
                        "error_type": exc.__class__.__name__,
                        "error": str(exc),
                        "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    }
                },
            )
            raise
        tool_logger.info(
            "operation completed",
            extra={"data": {**log_data, "duration_ms": round((time.perf_counter() - start) * 1000, 2)}},
        )
        return result


def parse_arguments(descriptor: OperationDescriptor, arguments: Mapping[str, Any] | None) -> BaseModel:
    """Build the typed request for ``descriptor`` or raise a ``ValidationError``."""
    if arguments is not None and not isinstance(arguments, Mapping):
        raise ValidationError(
            f"arguments for {descriptor.name} must be an object",
            required=descriptor.required_fields(),
        )
    try:
        return descriptor.input_model.model_validate(dict(arguments or {}))
    except pydantic.ValidationError as exc:
        problems = "; ".join(_describe_error(error) for error in exc.errors())
        raise ValidationError(
            f"invalid arguments for {descriptor.name}: {problems}",
            required=descriptor.required_fields(),
        ) from exc


def _describe_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
    return f"{location}: {error.get('msg', 'invalid value')}"


__all__ = [
    "OperationDescriptor",
    "OperationExecutor",
    "OperationHandler",
    "OperationRegistry",
    "parse_arguments",
]
