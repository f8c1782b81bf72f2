from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from loadready.analysis import render_header, render_progress, render_report
from loadready.config import LoadTestConfig, ServiceConfig
from loadready.loadgen.runner import Progress, run_load_test
from loadready.log import setup_logging
from loadready.server.supervisor import Supervisor
from loadready.storage import DEFAULT_DB_PATH, Storage

logger = logging.getLogger(__name__)


async def _print_progress(progress: Progress) -> None:
    sys.stdout.write(render_progress(progress))
    sys.stdout.flush()


def _build_load_config(parser: argparse.ArgumentParser, args: argparse.Namespace) -> LoadTestConfig:
    try:
        return LoadTestConfig(
            url=args.url,
            duration_sec=args.duration,
            concurrency=args.concurrency,
            target_rps=args.rps,
        )
    except ValueError as exc:
        parser.error(str(exc))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Load test for 100x traffic validation")
    parser.add_argument("--url", default="http://localhost:3000", help="Target URL")
    parser.add_argument("--duration", type=int, default=60, help="Test duration in seconds")
    parser.add_argument("--concurrency", type=int, default=100, help="Parallel request loops")
    parser.add_argument("--rps", type=int, default=1000, help="Target requests per second")
    parser.add_argument("--db", type=Path, default=None, help="Record the run in this DuckDB file")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    config = _build_load_config(parser, args)
    print(render_header(config))
    try:
        result = asyncio.run(run_load_test(config, progress=_print_progress))
        print(render_report(result.summary, result.checks))
        if args.db is not None:
            Storage(args.db).save_run(result)
            print(f"Run recorded: {result.run_id} ({args.db})")
    except Exception:
        logger.exception("Load test error")
        return 1
    return 0 if result.ready else 1


def serve(argv: list[str] | None = None) -> int:
    config = ServiceConfig.from_env()
    parser = argparse.ArgumentParser(description="Demo page service supervisor")
    parser.add_argument("--host", default=config.host)
    parser.add_argument("--port", type=int, default=config.port)
    parser.add_argument("--workers", type=int, default=config.workers)
    parser.add_argument("--log-level", default=config.log_level)
    args = parser.parse_args(argv)
    try:
        config = replace(
            config,
            host=args.host,
            port=args.port,
            workers=args.workers,
            log_level=args.log_level,
        )
    except ValueError as exc:
        parser.error(str(exc))

    setup_logging(config.log_level)
    try:
        Supervisor(config).run()
    except OSError:
        logger.exception("Supervisor could not start its workers")
        return 1
    return 0


def runs(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="List recorded load-test runs")
    parser.add_argument("--db", type=Path, default=DEFAULT_DB_PATH)
    parser.add_argument("--run-id", default=None, help="Show the per-second table for one run")
    parser.add_argument("--events", action="store_true", help="With --run-id, show every request instead")
    args = parser.parse_args(argv)

    storage = Storage(args.db)
    if args.run_id is None:
        print(storage.list_runs().to_string(index=False))
        return 0
    if not storage.run_exists(args.run_id):
        print(f"No run {args.run_id} in {args.db}", file=sys.stderr)
        return 1
    if args.events:
        print(storage.load_request_events(args.run_id).to_string(index=False))
    else:
        print(storage.load_per_second(args.run_id).to_string(index=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
