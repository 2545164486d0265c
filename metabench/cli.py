#!/usr/bin/env python3
"""
Postmeta Benchmark - command line entry point.

Usage:
    metabench run --post-mode=all --postmeta-min=0 --postmeta-max=10
    metabench reset
    metabench setup-schema
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Optional, Sequence

from metabench.config import settings
from metabench.core.config_loader import build_run_config, load_run_file
from metabench.core.driver import BenchmarkDriver
from metabench.core.report import render_report
from metabench.core.reset import reset_store
from metabench.errors import BenchmarkError, UsageError, classify_store_error
from metabench.models import PostMode, RunConfig
from metabench.stores import STORE_BACKENDS, ContentStore, create_content_store
from metabench.stores.postgres import PostgresContentStore

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(settings.LOG_FILE)
            if settings.LOG_FILE
            else logging.NullHandler(),
        ],
    )
    # asyncpg logs every pool event at DEBUG
    logging.getLogger("asyncpg").setLevel(logging.WARNING)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metabench",
        description="Benchmark post insert/query latency with varying postmeta counts.",
    )
    parser.add_argument(
        "--store",
        choices=STORE_BACKENDS,
        default=None,
        help="Content store backend (default: STORE_BACKEND setting).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run Benchmark.")
    run.add_argument(
        "--post-mode",
        choices=[m.value for m in PostMode],
        default=None,
        help="Post tier to benchmark, or 'all' for 100, 1k and 10k posts.",
    )
    run.add_argument(
        "--postmeta-min",
        type=int,
        default=None,
        help="Smallest number of postmeta per post (default 0).",
    )
    run.add_argument(
        "--postmeta-max",
        type=int,
        default=None,
        help="Largest number of postmeta per post, inclusive (default 10).",
    )
    run.add_argument(
        "--time-limit",
        type=float,
        default=None,
        help="Wall-clock budget in seconds (default BENCHMARK_TIME_LIMIT_SECONDS).",
    )
    run.add_argument(
        "--config",
        default=None,
        help="YAML run file; command-line options override its values.",
    )
    run.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the insert progress bar.",
    )

    subparsers.add_parser("reset", help="Delete all posts, postmeta and transients.")
    subparsers.add_parser(
        "setup-schema", help="Create the Postgres content tables if missing."
    )
    return parser


def _build_run_config(args: argparse.Namespace) -> RunConfig:
    file_data: dict[str, Any] = load_run_file(args.config) if args.config else {}
    file_data.setdefault("time_limit_seconds", settings.BENCHMARK_TIME_LIMIT_SECONDS)
    return build_run_config(
        file_data,
        {
            "post_mode": args.post_mode,
            "postmeta_min": args.postmeta_min,
            "postmeta_max": args.postmeta_max,
            "time_limit_seconds": args.time_limit,
        },
    )


async def _run_benchmark(
    config: RunConfig, store: ContentStore, show_progress: bool = True
) -> int:
    driver = BenchmarkDriver(
        store,
        config,
        settle_seconds=settings.RESET_SETTLE_SECONDS,
        show_progress=show_progress,
    )
    measurements = await driver.run()

    result = render_report(measurements, settings.CONTENT_DIR, settings.CONTENT_URL)
    print(f"Success: To see the benchmark: {result.url}")
    return 0


async def _run_command(
    args: argparse.Namespace, store: ContentStore, config: Optional[RunConfig] = None
) -> int:
    try:
        await store.connect()
        if args.command == "run" and config is not None:
            return await _run_benchmark(config, store, not args.no_progress)
        if args.command == "reset":
            await reset_store(store, settings.RESET_SETTLE_SECONDS)
            return 0
        if args.command == "setup-schema":
            if not isinstance(store, PostgresContentStore):
                raise UsageError("setup-schema requires the postgres store")
            await store.ensure_schema()
            return 0
        raise UsageError(f"Unknown command: {args.command}")
    finally:
        await store.close()


def _resolve_store_kind(args: argparse.Namespace) -> Optional[str]:
    if args.store:
        return args.store
    if getattr(args, "config", None):
        kind = load_run_file(args.config).get("store")
        if kind is not None and str(kind).lower() not in STORE_BACKENDS:
            raise UsageError(f"Unsupported store backend in run file: {kind}")
        return kind
    return None


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging()

    try:
        # Validate options before touching the store
        config = _build_run_config(args) if args.command == "run" else None
        store = create_content_store(_resolve_store_kind(args))
        return asyncio.run(_run_command(args, store, config))
    except UsageError as e:
        logger.error(str(e))
        return 2
    except BenchmarkError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        print("[metabench] interrupted", file=sys.stderr)
        return 130
    except Exception as e:
        classified = classify_store_error(e)
        if classified is None:
            raise
        logger.error(str(classified))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
