from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class ErrorType(str, Enum):
    TIMEOUT = "TIMEOUT"
    CONNECTION_REFUSED = "ECONNREFUSED"
    CONNECTION_RESET = "ECONNRESET"
    OTHER = "OTHER"


CONNECTION_ERRORS = (
    ErrorType.CONNECTION_REFUSED,
    ErrorType.CONNECTION_RESET,
    ErrorType.TIMEOUT,
)


@dataclass(frozen=True, slots=True)
class RequestEvent:
    wall_time: float
    mono_time: float
    latency_ms: float
    status_code: int | None
    error_type: ErrorType | None
    bytes_received: int = 0

    @property
    def success(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 400


@dataclass(frozen=True, slots=True)
class LoadTestSummary:
    duration_sec: float
    total_requests: int
    successful_requests: int
    failed_requests: int
    success_rate: float
    requests_per_sec: float
    min_ms: float
    max_ms: float
    mean_ms: float
    p50_ms: float
    p95_ms: float
    p99_ms: float
    status_codes: Mapping[int, int] = field(default_factory=dict)
    errors: Mapping[ErrorType, int] = field(default_factory=dict)

    @property
    def connection_errors(self) -> int:
        return sum(self.errors.get(kind, 0) for kind in CONNECTION_ERRORS)

    def to_dict(self) -> dict[str, object]:
        return {
            "duration_sec": self.duration_sec,
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "success_rate": self.success_rate,
            "requests_per_sec": self.requests_per_sec,
            "min_ms": self.min_ms,
            "max_ms": self.max_ms,
            "mean_ms": self.mean_ms,
            "p50_ms": self.p50_ms,
            "p95_ms": self.p95_ms,
            "p99_ms": self.p99_ms,
            "status_codes": {str(code): count for code, count in self.status_codes.items()},
            "errors": {kind.value: count for kind, count in self.errors.items()},
        }


@dataclass(frozen=True, slots=True)
class PerSecondMetrics:
    second: int
    requested_rps: float
    achieved_rps: float
    p50_ms: float
    p95_ms: float
    p99_ms: float
    error_rate: float
    timeout_rate: float
