"""Dataclass schemas for the gateway HTTP API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class HealthResponse:
    status: str
    server: str
    version: str
    active_sessions: int
    timestamp: str


@dataclass(frozen=True, slots=True)
class OperationModel:
    name: str
    description: str
    inputSchema: dict[str, Any]  # noqa: N815


@dataclass(frozen=True, slots=True)
class OperationListResponse:
    tools: list[OperationModel]


@dataclass(frozen=True, slots=True)
class SuccessResponse:
    data: Any
    success: bool = True


__all__ = [
    "HealthResponse",
    "OperationListResponse",
    "OperationModel",
    "SuccessResponse",
]
