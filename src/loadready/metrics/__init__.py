from __future__ import annotations

from loadready.metrics.accumulator import LoadMetrics
from loadready.metrics.aggregator import aggregate_per_second, percentile
from loadready.metrics.models import (
    CONNECTION_ERRORS,
    ErrorType,
    LoadTestSummary,
    PerSecondMetrics,
    RequestEvent,
)

__all__ = [
    "CONNECTION_ERRORS",
    "ErrorType",
    "LoadMetrics",
    "LoadTestSummary",
    "PerSecondMetrics",
    "RequestEvent",
    "aggregate_per_second",
    "percentile",
]
