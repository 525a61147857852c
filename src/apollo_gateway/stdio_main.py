"""Entrypoint for serving the gateway over standard input and output."""

from __future__ import annotations

import argparse
import logging
import signal
from collections.abc import Sequence
from functools import partial

import anyio

from apollo_gateway.config.settings import Settings
from apollo_gateway.errors import CredentialError
from apollo_gateway.observability.logging import STDERR_STREAM, configure_logging
from apollo_gateway.runtime.bootstrap import RuntimeContext, build_runtime, close_runtime_resources
from apollo_gateway.runtime.lifecycle import ShutdownHook
from apollo_gateway.transport.stdio import serve_stdio

logger = logging.getLogger("apollo_gateway.stdio")


async def run_stdio(runtime: RuntimeContext, *, api_key: str | None = None) -> None:
    try:
        client = runtime.clients.for_credential(explicit=api_key)
        async with anyio.create_task_group() as tg:
            tg.start_soon(_watch_signals, runtime.shutdown)
            await serve_stdio(runtime.dispatcher, client, runtime.sessions)
            tg.cancel_scope.cancel()
    finally:
        runtime.shutdown.trigger("stdio input closed")
        await close_runtime_resources(runtime)


async def _watch_signals(shutdown: ShutdownHook) -> None:
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            shutdown.trigger(f"signal {signal.Signals(signum).name}")
            return


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Apollo.io gateway over stdio (MCP).")
    parser.add_argument(
        "--api-key",
        default=None,
        help="Apollo.io API key; overrides APOLLO_IO_API_KEY.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    configure_logging(stream=STDERR_STREAM)
    runtime = build_runtime(Settings.load())
    try:
        anyio.run(partial(run_stdio, runtime, api_key=args.api_key))
    except CredentialError as exc:
        logger.error("cannot start stdio server", extra={"data": {"error": exc.message}})
        raise SystemExit(1) from exc


if __name__ == "__main__":  # pragma: no cover
    main()


__all__ = ["main", "run_stdio"]
