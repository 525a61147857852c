"""Session record for long-lived client connections."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

from apollo_gateway.json_types import JsonValue

if TYPE_CHECKING:
    from apollo_gateway.apollo.client import ApolloClient


class SessionStream(Protocol):
    """Transport-owned channel a session writes outbound frames to."""

    async def send(self, message: JsonValue) -> None:
        """Deliver one outbound frame to the connected client."""

    def close(self) -> None:
        """Terminate the channel; the transport ends the connection."""


@dataclass(frozen=True, slots=True)
class Session:
    """Registry entry for one open persistent connection.

    The stream is referenced, not owned: the transport that created it decides
    when the underlying connection ends.
    """

    session_id: str
    stream: SessionStream
    client: ApolloClient
    on_close: Callable[[Session], None] | None = None
    opened_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not self.session_id:
            raise ValueError("session_id must be non-empty")


__all__ = ["Session", "SessionStream"]
