from __future__ import annotations

import time

import httpx

from loadready.config import LoadTestConfig
from loadready.metrics import ErrorType, RequestEvent


def classify_error(exc: httpx.HTTPError) -> ErrorType:
    if isinstance(exc, httpx.TimeoutException):
        return ErrorType.TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        return ErrorType.CONNECTION_REFUSED
    if isinstance(exc, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)):
        return ErrorType.CONNECTION_RESET
    return ErrorType.OTHER


async def send_request(client: httpx.AsyncClient, config: LoadTestConfig) -> RequestEvent:
    """Issue one GET and describe its outcome; transport failures never raise."""
    start_wall = time.time()
    start_mono = time.perf_counter()
    try:
        resp = await client.get(
            config.url,
            headers=dict(config.headers),
            timeout=config.request_timeout_sec,
        )
    except httpx.HTTPError as exc:
        return RequestEvent(
            wall_time=start_wall,
            mono_time=time.perf_counter(),
            latency_ms=(time.perf_counter() - start_mono) * 1000.0,
            status_code=None,
            error_type=classify_error(exc),
        )
    end_mono = time.perf_counter()
    return RequestEvent(
        wall_time=start_wall,
        mono_time=end_mono,
        latency_ms=(end_mono - start_mono) * 1000.0,
        status_code=resp.status_code,
        error_type=None,
        bytes_received=resp.num_bytes_downloaded,
    )
