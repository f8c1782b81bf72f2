from __future__ import annotations

import asyncio
import contextlib
import logging
import time
import uuid
from dataclasses import dataclass, replace
from typing import Awaitable, Callable

import httpx

from loadready.analysis import Check, all_passed, validate
from loadready.config import LoadTestConfig
from loadready.loadgen.client import send_request
from loadready.metrics import LoadMetrics, LoadTestSummary, PerSecondMetrics, aggregate_per_second

logger = logging.getLogger(__name__)

REPORT_INTERVAL_SEC = 1.0


@dataclass(frozen=True, slots=True)
class Progress:
    elapsed_sec: float
    total_requests: int
    success_rate: float

    @property
    def requests_per_sec(self) -> float:
        return self.total_requests / self.elapsed_sec if self.elapsed_sec > 0 else 0.0


@dataclass(frozen=True, slots=True)
class RunResult:
    config: LoadTestConfig
    metrics: LoadMetrics
    summary: LoadTestSummary
    per_second: list[PerSecondMetrics]
    checks: list[Check]

    @property
    def run_id(self) -> str:
        return self.config.run_id or ""

    @property
    def ready(self) -> bool:
        return all_passed(self.checks)


ProgressCallback = Callable[[Progress], Awaitable[None]]


def _new_run_id() -> str:
    return uuid.uuid4().hex


async def run_load_test(
    config: LoadTestConfig,
    progress: ProgressCallback | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RunResult:
    if config.run_id is None:
        config = replace(config, run_id=_new_run_id())
    metrics = LoadMetrics()
    limits = httpx.Limits(
        max_connections=config.concurrency,
        max_keepalive_connections=config.concurrency,
    )
    started_mono = time.perf_counter()
    async with httpx.AsyncClient(limits=limits, transport=transport) as client:
        await _fixed_rate(client, config, metrics, progress, started_mono)
    duration = time.perf_counter() - started_mono

    summary = metrics.summarize(duration)
    per_second = aggregate_per_second(
        metrics.events,
        config.target_rps,
        started_mono,
        config.duration_sec,
    )
    logger.info(
        "Run %s finished: %d requests in %.2fs",
        config.run_id,
        summary.total_requests,
        duration,
    )
    return RunResult(
        config=config,
        metrics=metrics,
        summary=summary,
        per_second=per_second,
        checks=validate(summary),
    )


async def _fixed_rate(
    client: httpx.AsyncClient,
    config: LoadTestConfig,
    metrics: LoadMetrics,
    progress: ProgressCallback | None,
    started_mono: float,
) -> None:
    # Each loop pauses a fixed delay after every response; slow responses
    # therefore lower the achieved rate below the target.
    stop_at = started_mono + config.duration_sec
    delay = config.per_worker_delay_sec

    async def worker() -> None:
        while time.perf_counter() < stop_at:
            metrics.record(await send_request(client, config))
            if delay > 0:
                await asyncio.sleep(delay)

    reporter = None
    if progress is not None:
        reporter = asyncio.create_task(_report(metrics, progress, started_mono))
    try:
        await asyncio.gather(*(worker() for _ in range(config.concurrency)))
    finally:
        if reporter is not None:
            reporter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reporter


async def _report(metrics: LoadMetrics, progress: ProgressCallback, started_mono: float) -> None:
    while True:
        await asyncio.sleep(REPORT_INTERVAL_SEC)
        await progress(
            Progress(
                elapsed_sec=time.perf_counter() - started_mono,
                total_requests=metrics.total_requests,
                success_rate=metrics.success_rate(),
            )
        )
