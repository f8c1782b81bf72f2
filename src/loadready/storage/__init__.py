from __future__ import annotations

from pathlib import Path

from loadready.storage.duckdb_store import Storage

DEFAULT_DB_PATH = Path(".loadready/runs.duckdb")

__all__ = ["DEFAULT_DB_PATH", "Storage"]
