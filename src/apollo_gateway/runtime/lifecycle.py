"""Process shutdown coordination."""

from __future__ import annotations

import logging
from threading import Lock

from apollo_gateway.application.ports.session_registry import SessionRegistryPort

logger = logging.getLogger("apollo_gateway.runtime")


class ShutdownHook:
    """Closes every registered session exactly once, whichever path fires first."""

    def __init__(self, sessions: SessionRegistryPort) -> None:
        self._sessions = sessions
        self._lock = Lock()
        self._triggered = False

    @property
    def triggered(self) -> bool:
        return self._triggered

    def trigger(self, reason: str) -> bool:
        with self._lock:
            if self._triggered:
                return False
            self._triggered = True
        active = len(self._sessions)
        logger.info("shutdown requested", extra={"data": {"reason": reason, "active_sessions": active}})
        failures = self._sessions.close_all()
        if failures:
            logger.warning(
                "some sessions failed to close cleanly",
                extra={"data": {"failures": [f"{type(exc).__name__}: {exc}" for exc in failures]}},
            )
        return True


__all__ = ["ShutdownHook"]
