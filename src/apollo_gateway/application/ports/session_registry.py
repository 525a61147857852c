"""Port describing access to open client sessions."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from apollo_gateway.domain.session import Session, SessionStream

if TYPE_CHECKING:
    from apollo_gateway.apollo.client import ApolloClient


class SessionRegistryPort(Protocol):
    """In-memory registry for open persistent connections."""

    def create(
        self,
        stream: SessionStream,
        *,
        client: ApolloClient,
        on_close: Callable[[Session], None] | None = None,
    ) -> Session:
        """Register ``stream`` under a freshly generated identifier."""

    def lookup(self, session_id: str) -> Session | None:
        """Return the session identified by ``session_id``."""

    def remove(self, session_id: str, *, session: Session | None = None) -> Session | None:
        """Remove the session, if present."""

    def close_all(self) -> list[Exception]:
        """Close and remove every registered session, returning close failures."""

    def __len__(self) -> int:
        """Return the number of registered sessions."""


__all__ = ["SessionRegistryPort"]
