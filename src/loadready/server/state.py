from __future__ import annotations

import os
import time
from dataclasses import dataclass, field


@dataclass(slots=True)
class WorkerState:
    """Counters owned by one worker process for its whole lifetime."""

    worker_id: str = field(default_factory=lambda: str(os.getpid()))
    start_time: float = field(default_factory=time.time)
    request_count: int = 0
    total_response_time_ms: float = 0.0
    error_count: int = 0

    def record_request(self, elapsed_ms: float) -> None:
        self.request_count += 1
        self.total_response_time_ms += elapsed_ms

    def record_error(self) -> None:
        self.error_count += 1

    def average_response_time_ms(self) -> float:
        if self.request_count == 0:
            return 0
        return round(self.total_response_time_ms / self.request_count, 2)

    def uptime_ms(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        return int((now - self.start_time) * 1000)
