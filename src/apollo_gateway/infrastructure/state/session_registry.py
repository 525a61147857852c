"""In-memory implementation of the session registry port."""

from __future__ import annotations

import logging
from collections.abc import Callable
from threading import Lock
from typing import TYPE_CHECKING
from uuid import uuid4

from apollo_gateway.application.ports.session_registry import SessionRegistryPort
from apollo_gateway.domain.session import Session, SessionStream

if TYPE_CHECKING:
    from apollo_gateway.apollo.client import ApolloClient

logger = logging.getLogger("apollo_gateway.sessions")


def _default_id() -> str:
    return uuid4().hex


class InMemorySessionRegistry(SessionRegistryPort):
    """Maps session identifiers to open streams for the lifetime of the process."""

    def __init__(self, *, id_factory: Callable[[], str] | None = None) -> None:
        self._new_id = id_factory or _default_id
        self._sessions: dict[str, Session] = {}
        self._lock = Lock()

    def create(
        self,
        stream: SessionStream,
        *,
        client: ApolloClient,
        on_close: Callable[[Session], None] | None = None,
    ) -> Session:
        with self._lock:
            session_id = self._new_id()
            while session_id in self._sessions:
                session_id = self._new_id()
            session = Session(session_id=session_id, stream=stream, client=client, on_close=on_close)
            self._sessions[session_id] = session
            active = len(self._sessions)
        logger.info("session opened", extra={"data": {"session_id": session_id, "active": active}})
        return session

    def lookup(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str, *, session: Session | None = None) -> Session | None:
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                return None
            if session is not None and current is not session:
                return None
            del self._sessions[session_id]
            active = len(self._sessions)
        logger.info("session removed", extra={"data": {"session_id": session_id, "active": active}})
        return current

    def close_all(self) -> list[Exception]:
        with self._lock:
            sessions = list(self._sessions.values())
        failures: list[Exception] = []
        for session in sessions:
            try:
                session.stream.close()
            except Exception as exc:
                logger.exception(
                    "failed to close session stream",
                    extra={"data": {"session_id": session.session_id}},
                )
                failures.append(exc)
            finally:
                self.remove(session.session_id, session=session)
        logger.info(
            "closed all sessions",
            extra={"data": {"closed": len(sessions), "failures": len(failures)}},
        )
        return failures

    def ids(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = ["InMemorySessionRegistry"]
