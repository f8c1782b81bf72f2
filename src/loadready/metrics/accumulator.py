from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field

import numpy as np

from loadready.metrics.aggregator import percentile
from loadready.metrics.models import ErrorType, LoadTestSummary, RequestEvent


@dataclass(slots=True)
class LoadMetrics:
    """Shared outcome accumulator for one load-test run.

    ``record`` never awaits, so concurrent asyncio tasks can share one
    instance without a lock.
    """

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: float = 0.0
    min_latency_ms: float = math.inf
    max_latency_ms: float = 0.0
    latencies: list[float] = field(default_factory=list)
    status_codes: Counter[int] = field(default_factory=Counter)
    errors: Counter[ErrorType] = field(default_factory=Counter)
    events: list[RequestEvent] = field(default_factory=list)

    def record(self, event: RequestEvent) -> None:
        self.total_requests += 1
        self.events.append(event)
        if event.status_code is not None:
            # Only completed responses contribute latency samples.
            self.latencies.append(event.latency_ms)
            self.total_latency_ms += event.latency_ms
            self.min_latency_ms = min(self.min_latency_ms, event.latency_ms)
            self.max_latency_ms = max(self.max_latency_ms, event.latency_ms)
            self.status_codes[event.status_code] += 1
        if event.error_type is not None:
            self.errors[event.error_type] += 1
        if event.success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1

    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests * 100

    def summarize(self, duration_sec: float) -> LoadTestSummary:
        ordered = np.sort(np.asarray(self.latencies, dtype=float))
        has_samples = ordered.size > 0
        return LoadTestSummary(
            duration_sec=duration_sec,
            total_requests=self.total_requests,
            successful_requests=self.successful_requests,
            failed_requests=self.failed_requests,
            success_rate=self.success_rate(),
            requests_per_sec=self.total_requests / duration_sec if duration_sec > 0 else 0.0,
            min_ms=float(ordered[0]) if has_samples else 0.0,
            max_ms=float(ordered[-1]) if has_samples else 0.0,
            mean_ms=self.total_latency_ms / self.total_requests if self.total_requests else 0.0,
            p50_ms=percentile(ordered, 50),
            p95_ms=percentile(ordered, 95),
            p99_ms=percentile(ordered, 99),
            status_codes=dict(sorted(self.status_codes.items())),
            errors=dict(self.errors),
        )
