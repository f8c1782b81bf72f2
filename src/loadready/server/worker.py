"""Entry point for a single request-handling worker process."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import socket
from dataclasses import replace
from datetime import datetime

from loadready.config import ServiceConfig
from loadready.log import setup_logging
from loadready.server.app import PageApp
from loadready.server.page import render_page
from loadready.server.payload import build_payload
from loadready.server.protocol import HttpServer
from loadready.server.state import WorkerState

logger = logging.getLogger(__name__)


def build_app(state: WorkerState | None = None) -> PageApp:
    state = state or WorkerState()
    payload = build_payload(render_page(datetime.now().astimezone()))
    return PageApp(payload, state)


async def run_worker(config: ServiceConfig, stop: asyncio.Event | None = None) -> None:
    app = build_app()
    server = HttpServer(
        app,
        keep_alive_timeout_sec=config.keep_alive_timeout_sec,
        headers_timeout_sec=config.headers_timeout_sec,
    )
    await server.start(config.host, config.port, reuse_port=hasattr(socket, "SO_REUSEPORT"))
    logger.info("Worker %s listening on %s:%d", app.state.worker_id, config.host, server.port)

    stop = stop or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop.set)
    await stop.wait()

    logger.info(
        "Worker %s draining %d open connection(s)",
        app.state.worker_id,
        server.open_connections,
    )
    await server.shutdown()
    logger.info(
        "Worker %s stopped after %d request(s), %d error(s)",
        app.state.worker_id,
        app.state.request_count,
        app.state.error_count,
    )


def main(argv: list[str] | None = None) -> int:
    config = ServiceConfig.from_env()
    parser = argparse.ArgumentParser(description="Demo page worker")
    parser.add_argument("--host", default=config.host)
    parser.add_argument("--port", type=int, default=config.port)
    parser.add_argument("--log-level", default=config.log_level)
    args = parser.parse_args(argv)
    config = replace(config, host=args.host, port=args.port, log_level=args.log_level)

    setup_logging(config.log_level)
    try:
        asyncio.run(run_worker(config))
    except OSError:
        logger.exception("Worker failed to listen on %s:%d", config.host, config.port)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
