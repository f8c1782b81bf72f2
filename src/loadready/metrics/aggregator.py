from __future__ import annotations

import math
from collections import defaultdict
from typing import Iterable, Sequence

import numpy as np

from loadready.metrics.models import ErrorType, PerSecondMetrics, RequestEvent


def percentile(sorted_values: Sequence[float] | np.ndarray, p: float) -> float:
    """Nearest-rank percentile of an ascending sample; 0 for an empty one."""
    n = len(sorted_values)
    if n == 0:
        return 0.0
    index = max(0, math.ceil((p / 100) * n) - 1)
    return float(sorted_values[min(index, n - 1)])


def aggregate_per_second(
    events: Iterable[RequestEvent],
    requested_rps: float,
    start_mono: float,
    duration_sec: float,
) -> list[PerSecondMetrics]:
    buckets: dict[int, list[RequestEvent]] = defaultdict(list)
    for event in events:
        second = max(0, int(event.mono_time - start_mono))
        buckets[second].append(event)

    seconds = max(math.ceil(duration_sec), max(buckets, default=-1) + 1)
    metrics: list[PerSecondMetrics] = []
    for second in range(seconds):
        bucket = buckets.get(second, [])
        latencies = np.sort(
            np.asarray([e.latency_ms for e in bucket if e.status_code is not None], dtype=float)
        )
        achieved = len(bucket)
        error_count = sum(1 for e in bucket if not e.success)
        timeout_count = sum(1 for e in bucket if e.error_type is ErrorType.TIMEOUT)
        total = max(1, achieved)
        metrics.append(
            PerSecondMetrics(
                second=second,
                requested_rps=requested_rps,
                achieved_rps=float(achieved),
                p50_ms=percentile(latencies, 50),
                p95_ms=percentile(latencies, 95),
                p99_ms=percentile(latencies, 99),
                error_rate=error_count / total,
                timeout_rate=timeout_count / total,
            )
        )
    return metrics
