"""Request routing for one worker.

Routing is a pure function of the request line and headers plus the worker's
state and payload, so the HTTP protocol layer only has to frame bytes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable, Iterator

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

from loadready.server.payload import Payload
from loadready.server.state import WorkerState

METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
NO_CACHE = "no-cache, no-store, must-revalidate"
PAGE_CACHE = "public, max-age=300, stale-while-revalidate=60"

Headers = list[tuple[str, str]]


@dataclass(frozen=True, slots=True)
class Response:
    status: int
    headers: Headers
    body: bytes
    counts_as_request: bool = False


class WorkerStateCollector:
    """Exposes a WorkerState as Prometheus series at scrape time."""

    def __init__(self, state: WorkerState) -> None:
        self._state = state

    def collect(self) -> Iterator[CounterMetricFamily | GaugeMetricFamily]:
        state = self._state
        requests = CounterMetricFamily(
            "http_requests",
            "Total payload requests handled by this worker",
            labels=["worker"],
        )
        requests.add_metric([state.worker_id], state.request_count)
        yield requests

        errors = CounterMetricFamily(
            "http_errors",
            "Transport-level errors seen by this worker",
            labels=["worker"],
        )
        errors.add_metric([state.worker_id], state.error_count)
        yield errors

        avg = GaugeMetricFamily(
            "http_response_time_avg_ms",
            "Average payload response time in milliseconds",
            labels=["worker"],
        )
        avg.add_metric([state.worker_id], state.average_response_time_ms())
        yield avg

        uptime = GaugeMetricFamily(
            "process_uptime_seconds",
            "Seconds since this worker started",
            labels=["worker"],
        )
        uptime.add_metric([state.worker_id], state.uptime_ms() / 1000)
        yield uptime


class PageApp:
    def __init__(self, payload: Payload, state: WorkerState) -> None:
        self.payload = payload
        self.state = state
        self.registry = CollectorRegistry(auto_describe=False)
        self.registry.register(WorkerStateCollector(state))

    def handle(self, method: str, target: str, headers: Iterable[tuple[str, str]]) -> Response:
        path = target.split("?", 1)[0]
        if path == "/health":
            return self._health()
        if path == "/metrics":
            return self._metrics()
        accept_encoding = ", ".join(v for k, v in headers if k.lower() == "accept-encoding")
        return self._page(method, accepts_gzip(accept_encoding))

    def _health(self) -> Response:
        body = json.dumps(
            {
                "status": "healthy",
                "worker": self.state.worker_id,
                "uptime_ms": self.state.uptime_ms(),
                "requests_handled": self.state.request_count,
                "avg_response_time_ms": self.state.average_response_time_ms(),
                "errors": self.state.error_count,
            }
        ).encode("utf-8")
        return Response(
            200,
            [
                ("Content-Type", "application/json"),
                ("Cache-Control", NO_CACHE),
                ("Content-Length", str(len(body))),
            ],
            body,
        )

    def _metrics(self) -> Response:
        body = generate_latest(self.registry)
        return Response(
            200,
            [
                ("Content-Type", METRICS_CONTENT_TYPE),
                ("Cache-Control", NO_CACHE),
                ("Content-Length", str(len(body))),
            ],
            body,
        )

    def _page(self, method: str, use_gzip: bool) -> Response:
        body = self.payload.body_for(use_gzip)
        headers: Headers = [
            ("Content-Type", "text/html; charset=utf-8"),
            ("Cache-Control", PAGE_CACHE),
            ("ETag", self.payload.etag),
            ("X-Content-Type-Options", "nosniff"),
            ("X-Frame-Options", "DENY"),
            ("Vary", "Accept-Encoding"),
        ]
        if use_gzip:
            headers.append(("Content-Encoding", "gzip"))
        headers.append(("Content-Length", str(len(body))))
        if method == "HEAD":
            body = b""
        return Response(200, headers, body, counts_as_request=True)


def accepts_gzip(accept_encoding: str) -> bool:
    for item in accept_encoding.split(","):
        coding, _, params = item.strip().partition(";")
        if coding.strip().lower() not in ("gzip", "x-gzip"):
            continue
        params = params.replace(" ", "").lower()
        if params.startswith("q="):
            try:
                return float(params[2:]) > 0
            except ValueError:
                return False
        return True
    return False
