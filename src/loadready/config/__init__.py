from __future__ import annotations

from loadready.config.models import (
    DEFAULT_PORT,
    HEADERS_TIMEOUT_SEC,
    KEEP_ALIVE_TIMEOUT_SEC,
    LoadTestConfig,
    ServiceConfig,
)

__all__ = [
    "DEFAULT_PORT",
    "HEADERS_TIMEOUT_SEC",
    "KEEP_ALIVE_TIMEOUT_SEC",
    "LoadTestConfig",
    "ServiceConfig",
]
