from __future__ import annotations

from loadready.server.app import PageApp, Response, accepts_gzip
from loadready.server.payload import Payload, build_payload
from loadready.server.protocol import HttpServer
from loadready.server.state import WorkerState
from loadready.server.supervisor import Supervisor

__all__ = [
    "HttpServer",
    "PageApp",
    "Payload",
    "Response",
    "Supervisor",
    "WorkerState",
    "accepts_gzip",
    "build_payload",
]
