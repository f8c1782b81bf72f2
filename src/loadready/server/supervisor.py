"""Process supervisor: one worker per CPU, crash restart, signal fan-out.

Workers are restarted one for one as soon as an unexpected exit is seen. There
is no backoff, so a worker that dies on startup (for example because the port
is taken) is respawned on every poll until the supervisor is stopped.
"""

from __future__ import annotations

import logging
import signal
import subprocess
import sys
import time
from functools import partial
from types import FrameType
from typing import Callable, Protocol

from loadready.config import ServiceConfig

logger = logging.getLogger(__name__)


class WorkerProcess(Protocol):
    pid: int

    def poll(self) -> int | None:
        ...

    def send_signal(self, sig: int) -> None:
        ...


SpawnFn = Callable[[], WorkerProcess]


def spawn_worker(config: ServiceConfig) -> subprocess.Popen[bytes]:
    return subprocess.Popen(
        [
            sys.executable,
            "-m",
            "loadready.server.worker",
            "--host",
            config.host,
            "--port",
            str(config.port),
            "--log-level",
            config.log_level,
        ]
    )


class Supervisor:
    def __init__(self, config: ServiceConfig, spawn: SpawnFn | None = None) -> None:
        self.config = config
        self._spawn = spawn or partial(spawn_worker, config)
        self.workers: list[WorkerProcess] = []
        self.shutting_down = False
        self.restarts = 0

    def start(self) -> None:
        """Spawn the initial pool; any failure stops what was started and re-raises."""
        try:
            for _ in range(self.config.workers):
                if self.shutting_down:
                    break
                proc = self._spawn_one()
                self.workers.append(proc)
                self._stop_if_shutting_down(proc)
        except Exception:
            logger.exception("Could not start the worker pool")
            self.shutdown()
            raise
        logger.info("Supervisor started %d worker(s)", len(self.workers))

    def reap(self) -> int:
        """Replace every worker that exited without a shutdown request."""
        restarted = 0
        for index, proc in enumerate(self.workers):
            code = proc.poll()
            if code is None:
                continue
            if self.shutting_down:
                break
            logger.warning("Worker %d exited with code %s, starting a replacement", proc.pid, code)
            replacement = self._spawn_one()
            self.workers[index] = replacement
            self._stop_if_shutting_down(replacement)
            restarted += 1
        self.restarts += restarted
        return restarted

    def live_workers(self) -> list[WorkerProcess]:
        return [proc for proc in self.workers if proc.poll() is None]

    def shutdown(self, sig: int = signal.SIGTERM) -> None:
        # Fire and forget: each worker drains on its own.
        self.shutting_down = True
        for proc in self.live_workers():
            self._signal(proc, sig)
        logger.info("Supervisor signalled %d worker(s) to stop", len(self.workers))

    def run(self) -> None:
        signal.signal(signal.SIGTERM, self._on_signal)
        signal.signal(signal.SIGINT, self._on_signal)
        self.start()
        while not self.shutting_down:
            self.reap()
            time.sleep(self.config.poll_interval_sec)

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Supervisor received %s", signal.Signals(signum).name)
        self.shutdown(signal.SIGTERM)

    def _spawn_one(self) -> WorkerProcess:
        proc = self._spawn()
        logger.info("Started worker pid %d", proc.pid)
        return proc

    def _stop_if_shutting_down(self, proc: WorkerProcess) -> None:
        # A stop request that landed mid-spawn never saw this worker.
        if self.shutting_down:
            self._signal(proc, signal.SIGTERM)

    def _signal(self, proc: WorkerProcess, sig: int) -> None:
        try:
            proc.send_signal(sig)
        except ProcessLookupError:
            logger.debug("Worker %d already gone", proc.pid)
