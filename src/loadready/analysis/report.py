"""Console rendering for load-test runs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loadready.analysis.checks import Check, all_passed
from loadready.config import LoadTestConfig
from loadready.metrics import LoadTestSummary

if TYPE_CHECKING:
    from loadready.loadgen.runner import Progress

RULE = "=" * 60


def render_header(config: LoadTestConfig) -> str:
    return "\n".join(
        [
            RULE,
            "LOAD TEST - 100X TRAFFIC VALIDATION",
            RULE,
            f"Target URL:        {config.url}",
            f"Duration:          {config.duration_sec:g} seconds",
            f"Concurrency:       {config.concurrency} connections",
            f"Target RPS:        {config.target_rps:g} requests/second",
            RULE,
            "",
            "Starting load test...",
            "",
        ]
    )


def render_progress(progress: Progress) -> str:
    return (
        f"\rProgress: {progress.elapsed_sec:.0f}s"
        f" | Requests: {progress.total_requests}"
        f" | RPS: {progress.requests_per_sec:.0f}"
        f" | Success: {progress.success_rate:.1f}%"
    )


def render_report(summary: LoadTestSummary, checks: list[Check]) -> str:
    lines = [
        "",
        "",
        RULE,
        "LOAD TEST RESULTS",
        RULE,
        "",
        "--- SUMMARY ---",
        f"Total Duration:      {summary.duration_sec:.2f} seconds",
        f"Total Requests:      {summary.total_requests}",
        f"Successful:          {summary.successful_requests}",
        f"Failed:              {summary.failed_requests}",
        f"Success Rate:        {summary.success_rate:.2f}%",
        f"Requests/Second:     {summary.requests_per_sec:.2f}",
        "",
        "--- LATENCY (ms) ---",
        f"Min:                 {summary.min_ms:.2f}",
        f"Max:                 {summary.max_ms:.2f}",
        f"Average:             {summary.mean_ms:.2f}",
        f"P50 (Median):        {summary.p50_ms:.2f}",
        f"P95:                 {summary.p95_ms:.2f}",
        f"P99:                 {summary.p99_ms:.2f}",
        "",
        "--- STATUS CODES ---",
    ]
    lines.extend(f"{code:<20} {count}" for code, count in summary.status_codes.items())
    if summary.errors:
        lines.extend(["", "--- ERRORS ---"])
        lines.extend(f"{kind.value:<20} {count}" for kind, count in summary.errors.items())

    lines.extend(["", RULE, "", "--- 100X TRAFFIC VALIDATION ---"])
    for check in checks:
        symbol = "✓" if check.passed else "✗"
        status = "PASS" if check.passed else "FAIL"
        lines.append(f"{symbol} {check.name}: {check.observed} [{status}]")

    lines.extend(["", RULE])
    if all_passed(checks):
        lines.append("RESULT: READY FOR 100X TRAFFIC")
    else:
        lines.append("RESULT: NOT READY - ADDRESS FAILED CHECKS")
    lines.append(RULE)
    return "\n".join(lines)
