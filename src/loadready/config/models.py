from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping


DEFAULT_PORT = 3000
# Above the 60s idle timeout most load balancers use.
KEEP_ALIVE_TIMEOUT_SEC = 65.0
HEADERS_TIMEOUT_SEC = 66.0


def _default_workers() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    workers: int = field(default_factory=_default_workers)
    keep_alive_timeout_sec: float = KEEP_ALIVE_TIMEOUT_SEC
    headers_timeout_sec: float = HEADERS_TIMEOUT_SEC
    poll_interval_sec: float = 0.2
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.workers < 1:
            msg = f"workers must be at least 1, got {self.workers}"
            raise ValueError(msg)
        if not 0 <= self.port <= 65535:
            msg = f"port out of range: {self.port}"
            raise ValueError(msg)
        if self.headers_timeout_sec <= self.keep_alive_timeout_sec:
            msg = "headers timeout must exceed the keep-alive timeout"
            raise ValueError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServiceConfig:
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {
            "host": env.get("HOST", "0.0.0.0"),
            "port": int(env.get("PORT", DEFAULT_PORT)),
            "log_level": env.get("LOG_LEVEL", "INFO"),
        }
        if env.get("WEB_CONCURRENCY"):
            kwargs["workers"] = int(env["WEB_CONCURRENCY"])
        return cls(**kwargs)


@dataclass(frozen=True, slots=True)
class LoadTestConfig:
    url: str = "http://localhost:3000"
    duration_sec: float = 60
    concurrency: int = 100
    target_rps: float = 1000
    request_timeout_sec: float = 30.0
    headers: Mapping[str, str] = field(
        default_factory=lambda: {
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
        }
    )
    run_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.duration_sec <= 0:
            msg = f"duration must be positive, got {self.duration_sec}"
            raise ValueError(msg)
        if self.concurrency < 1:
            msg = f"concurrency must be at least 1, got {self.concurrency}"
            raise ValueError(msg)
        if self.target_rps <= 0:
            msg = f"rps must be positive, got {self.target_rps}"
            raise ValueError(msg)

    @property
    def per_worker_delay_sec(self) -> float:
        # 1000ms / (rps / concurrency), expressed in seconds
        return 1.0 / (self.target_rps / self.concurrency)

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "run_id": self.run_id or "",
            "created_at": self.created_at.isoformat(),
            "url": self.url,
            "duration_sec": self.duration_sec,
            "concurrency": self.concurrency,
            "target_rps": self.target_rps,
            "request_timeout_sec": self.request_timeout_sec,
            "headers": dict(self.headers),
        }
