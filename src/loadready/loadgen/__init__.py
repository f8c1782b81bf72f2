from __future__ import annotations

from loadready.loadgen.client import classify_error, send_request
from loadready.loadgen.runner import Progress, RunResult, run_load_test

__all__ = ["Progress", "RunResult", "classify_error", "run_load_test", "send_request"]
