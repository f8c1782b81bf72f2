from __future__ import annotations

import asyncio
import itertools

import httpx
import pytest

from loadready.config import LoadTestConfig
from loadready.loadgen import Progress, classify_error, run_load_test
from loadready.loadgen import runner
from loadready.metrics import ErrorType


def _config(**overrides: object) -> LoadTestConfig:
    params: dict[str, object] = {
        "url": "http://testserver/",
        "duration_sec": 0.5,
        "concurrency": 4,
        "target_rps": 40,
    }
    params.update(overrides)
    return LoadTestConfig(**params)  # type: ignore[arg-type]


def test_per_worker_delay() -> None:
    assert LoadTestConfig(target_rps=1000, concurrency=100).per_worker_delay_sec == pytest.approx(0.1)
    assert LoadTestConfig(target_rps=40, concurrency=4).per_worker_delay_sec == pytest.approx(0.1)


def test_healthy_target_is_ready() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="<html></html>")

    result = asyncio.run(run_load_test(_config(), transport=httpx.MockTransport(handler)))
    summary = result.summary

    assert summary.total_requests == len(seen)
    assert summary.total_requests >= 4
    assert summary.successful_requests + summary.failed_requests == summary.total_requests
    assert summary.status_codes == {200: summary.total_requests}
    assert summary.errors == {}
    assert result.ready
    assert result.run_id
    assert seen[0].headers["accept-encoding"] == "gzip, deflate"
    assert sum(m.achieved_rps for m in result.per_second) == summary.total_requests


def test_fixed_delay_bounds_the_request_count() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200))
    result = asyncio.run(run_load_test(_config(duration_sec=0.4, concurrency=2, target_rps=4), transport=transport))
    # each loop sleeps 0.5s after its first request, past the 0.4s run
    assert result.summary.total_requests == 2


def test_refused_connections_are_classified_and_fail_the_run() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    result = asyncio.run(run_load_test(_config(), transport=httpx.MockTransport(handler)))
    summary = result.summary

    assert summary.total_requests > 0
    assert summary.failed_requests == summary.total_requests
    assert summary.errors == {ErrorType.CONNECTION_REFUSED: summary.total_requests}
    assert summary.status_codes == {}
    assert summary.p95_ms == 0.0
    assert not result.ready
    failed = {check.name for check in result.checks if not check.passed}
    assert failed == {"Success Rate > 99%", "No Connection Errors"}


def test_error_statuses_count_as_failures() -> None:
    counter = itertools.count()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503 if next(counter) % 2 else 200)

    result = asyncio.run(run_load_test(_config(), transport=httpx.MockTransport(handler)))
    summary = result.summary

    assert set(summary.status_codes) == {200, 503}
    assert summary.failed_requests == summary.status_codes[503]
    assert summary.errors == {}
    assert not result.ready


def test_progress_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(runner, "REPORT_INTERVAL_SEC", 0.05)
    reports: list[Progress] = []

    async def progress(update: Progress) -> None:
        reports.append(update)

    transport = httpx.MockTransport(lambda request: httpx.Response(200))
    asyncio.run(run_load_test(_config(), progress=progress, transport=transport))

    assert reports
    assert all(r.success_rate == 100.0 for r in reports if r.total_requests)
    assert reports[-1].elapsed_sec > reports[0].elapsed_sec


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (httpx.ReadTimeout("timed out"), ErrorType.TIMEOUT),
        (httpx.ConnectTimeout("timed out"), ErrorType.TIMEOUT),
        (httpx.ConnectError("refused"), ErrorType.CONNECTION_REFUSED),
        (httpx.ReadError("reset by peer"), ErrorType.CONNECTION_RESET),
        (httpx.RemoteProtocolError("server disconnected"), ErrorType.CONNECTION_RESET),
        (httpx.DecodingError("bad gzip"), ErrorType.OTHER),
    ],
)
def test_classify_error(exc: httpx.HTTPError, expected: ErrorType) -> None:
    assert classify_error(exc) is expected


def test_invalid_config_is_rejected() -> None:
    with pytest.raises(ValueError):
        LoadTestConfig(concurrency=0)
    with pytest.raises(ValueError):
        LoadTestConfig(target_rps=0)
    with pytest.raises(ValueError):
        LoadTestConfig(duration_sec=0)
