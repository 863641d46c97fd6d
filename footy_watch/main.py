"""Entry point for footy-watch."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
import threading

import structlog

from footy_watch.alerts.queue import AlertQueue
from footy_watch.api.bwaps_client import BwapsClient
from footy_watch.commands import WatchCommands, dispatch
from footy_watch.config import Settings
from footy_watch.engine.movement import MovementDetector
from footy_watch.engine.registry import WatchRegistry
from footy_watch.polling.scheduler import WatchPoller

HELP_TEXT = "Try: watch <match> [N%] [up|down], unwatch <match>, list watches, odds <match>"


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if sys.stderr.isatty() else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        # stdout carries command replies
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, lines: asyncio.Queue) -> None:
    """Feed stdin lines into ``lines``; None marks EOF."""

    def _reader() -> None:
        for line in sys.stdin:
            loop.call_soon_threadsafe(lines.put_nowait, line)
        loop.call_soon_threadsafe(lines.put_nowait, None)

    threading.Thread(target=_reader, name="stdin-reader", daemon=True).start()


async def serve_commands(commands: WatchCommands, lines: asyncio.Queue, stop_event: asyncio.Event) -> None:
    """Answer command lines until EOF, then request shutdown."""
    log = structlog.get_logger()
    while True:
        line = await lines.get()
        if line is None:
            log.info("stdin_closed")
            break
        text = line.strip()
        if not text:
            continue
        result = await dispatch(commands, text)
        print(HELP_TEXT if result is None else result.text, flush=True)
    stop_event.set()


async def run() -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    log = structlog.get_logger()
    log.info("starting", version="0.1.0")

    client = BwapsClient(settings)
    registry = WatchRegistry()
    queue = AlertQueue(max_size=settings.alert_queue_max_size)
    poller = WatchPoller(
        client,
        registry,
        queue,
        MovementDetector(),
        interval_ms=settings.watch_poll_interval_ms,
        fetch_timeout_seconds=settings.snapshot_timeout_seconds,
    )
    commands = WatchCommands(
        client, registry, queue, poller, drain_limit=settings.alert_drain_limit
    )

    stop_event = asyncio.Event()

    def handle_shutdown(*_: object) -> None:
        log.info("shutdown_requested")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle_shutdown)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler for SIGTERM
            pass

    poller.start()
    lines: asyncio.Queue = asyncio.Queue()
    _start_stdin_reader(loop, lines)
    server = asyncio.create_task(serve_commands(commands, lines, stop_event))

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        poller.stop()
        server.cancel()
        await client.close()
        log.info("shutdown_complete")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
