from __future__ import annotations

from dataclasses import dataclass

from loadready.metrics import LoadTestSummary

MIN_SUCCESS_RATE_PCT = 99.0
MAX_P95_MS = 500.0
MAX_P99_MS = 1000.0


@dataclass(frozen=True, slots=True)
class Check:
    name: str
    passed: bool
    observed: str


def validate(summary: LoadTestSummary) -> list[Check]:
    """Apply the fixed readiness thresholds to a finished run."""
    connection_errors = summary.connection_errors
    return [
        Check(
            name="Success Rate > 99%",
            passed=summary.success_rate > MIN_SUCCESS_RATE_PCT,
            observed=f"{summary.success_rate:.2f}%",
        ),
        Check(
            name="P95 Latency < 500ms",
            passed=summary.p95_ms < MAX_P95_MS,
            observed=f"{summary.p95_ms:.2f}ms",
        ),
        Check(
            name="P99 Latency < 1000ms",
            passed=summary.p99_ms < MAX_P99_MS,
            observed=f"{summary.p99_ms:.2f}ms",
        ),
        Check(
            name="No Connection Errors",
            passed=connection_errors == 0,
            observed=f"{connection_errors} errors",
        ),
    ]


def all_passed(checks: list[Check]) -> bool:
    return all(check.passed for check in checks)
