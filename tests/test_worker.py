from __future__ import annotations

import asyncio
import socket

from loadready.config import ServiceConfig
from loadready.server import worker


def test_build_app_renders_page_once() -> None:
    app = worker.build_app()
    assert app.payload.raw.startswith(b"<!DOCTYPE html>")
    assert app.state.request_count == 0


def test_run_worker_returns_after_stop() -> None:
    config = ServiceConfig(host="127.0.0.1", port=0, workers=1)

    async def main() -> None:
        stop = asyncio.Event()
        stop.set()
        await asyncio.wait_for(worker.run_worker(config, stop), 5)

    asyncio.run(main())


def test_bind_failure_exits_one() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
        taken.bind(("127.0.0.1", 0))
        taken.listen()
        port = taken.getsockname()[1]
        assert worker.main(["--host", "127.0.0.1", "--port", str(port)]) == 1
