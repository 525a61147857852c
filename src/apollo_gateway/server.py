"""Entrypoint for running the gateway HTTP service under uvicorn."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import socket
from collections.abc import Sequence
from types import FrameType

import uvicorn

from apollo_gateway.config.settings import Settings
from apollo_gateway.infrastructure.http.app import create_app
from apollo_gateway.observability.logging import configure_logging
from apollo_gateway.runtime.bootstrap import build_runtime
from apollo_gateway.runtime.lifecycle import ShutdownHook

configure_logging()
_settings = Settings.load()
_runtime = build_runtime(_settings)

app = create_app(_runtime)

logger = logging.getLogger("apollo_gateway.server")


class GatewayServer(uvicorn.Server):
    """uvicorn server that closes every session as soon as an exit signal arrives.

    Open SSE streams would otherwise keep uvicorn waiting on its connection drain.
    """

    def __init__(self, config: uvicorn.Config, shutdown: ShutdownHook) -> None:
        super().__init__(config)
        self._shutdown = shutdown
        self._loop: asyncio.AbstractEventLoop | None = None

    async def serve(self, sockets: list[socket.socket] | None = None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets=sockets)

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        reason = f"signal {_signal_name(sig)}"
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._shutdown.trigger, reason)
        else:
            self._shutdown.trigger(reason)
        super().handle_exit(sig, frame)


def _signal_name(sig: int) -> str:
    try:
        return signal.Signals(sig).name
    except ValueError:
        return str(sig)


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Apollo.io gateway HTTP service.")
    parser.add_argument("--host", default=_settings.host, help="Host interface to bind.")
    parser.add_argument("--port", type=int, default=_settings.port, help="Port to listen on.")
    args = parser.parse_args(list(argv) if argv is not None else None)

    config = uvicorn.Config(
        app,
        host=args.host,
        port=args.port,
        # logging already setup
        log_config=None,
    )
    logger.info("starting uvicorn", extra={"data": {"host": args.host, "port": args.port}})
    GatewayServer(config, _runtime.shutdown).run()


if __name__ == "__main__":  # pragma: no cover
    main()


__all__ = ["GatewayServer", "app", "main"]
