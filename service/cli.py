# service/cli.py
"""
User-facing command-line entrypoints.

Subcommands
-----------
run [--query Q] [--max-pages N] [--dry-run] [--kwargs k=v ...]
    - Executes one job_scout pipeline run via modules.job_scout.main.run(...)
    - SIGINT/SIGTERM cancel the run cooperatively (in-flight work drains)
    - Prints the run summary and writes a `cli_run` activity record

latest [--limit N]
    - Lists the most recently stored jobs from the SQLite store
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import threading
import time
import uuid
from collections.abc import Iterable
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from modules.job_scout import main as _job_scout
from modules.job_scout.lib import render
from modules.job_scout.lib.config import ConfigError, Settings
from modules.job_scout.lib.db import JobStore
from service import logging_utils as L

LOG = logging.getLogger("service.cli")


# ----------------------------- Logging setup ---------------------------------
def _ensure_logging() -> None:
    """Initialize a reasonable logging setup if none exists yet."""
    root = logging.getLogger()
    if not root.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


# -------------------------- Utility / glue code ------------------------------
def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """
    Parse key=value strings into a dict.
    - Values that look like JSON (true/false/null/number/object/array) are parsed.
    - Otherwise keep as raw strings.
    """
    out: dict[str, Any] = {}
    for raw in pairs:
        if "=" not in raw:
            raise argparse.ArgumentTypeError(f"--kwargs item must be key=value (got {raw!r})")
        k, v = raw.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            raise argparse.ArgumentTypeError(f"Invalid key in --kwargs item {raw!r}")
        try:
            out[k] = json.loads(v)
        except json.JSONDecodeError:
            out[k] = v
    return out


@contextmanager
def _cancel_on_signals(cancel: threading.Event):
    """Set `cancel` on SIGINT/SIGTERM for the duration of the block."""

    def _handler(signum=None, frame=None):
        LOG.info("Signal %s received; cancelling run...", signum)
        cancel.set()

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    for sig in previous:
        signal.signal(sig, _handler)
    try:
        yield
    finally:
        for sig, h in previous.items():
            signal.signal(sig, h)


def _now_iso():
    return datetime.now().astimezone().isoformat()


# ------------------------------ Subcommands ----------------------------------
def cmd_run(args: argparse.Namespace) -> int:
    run_id = uuid.uuid4().hex
    start_time = time.monotonic()

    kwargs = _parse_kv_pairs(args.kwargs or [])
    if args.query is not None:
        kwargs["query"] = args.query
    if args.max_pages is not None:
        kwargs["max_pages"] = args.max_pages
    if args.dry_run:
        kwargs["dry_run"] = True
    LOG.debug("Run job_scout with kwargs=%s", kwargs)

    cancel = threading.Event()
    try:
        with _cancel_on_signals(cancel):
            result = _job_scout.run(cancel=cancel, **kwargs)

        duration_ms = int((time.monotonic() - start_time) * 1000)
        L.write_activity_log({
            "ts": _now_iso(),
            "event": "cli_run",
            "run_id": run_id,
            "module": "job_scout",
            "trigger_type": "adhoc",
            "kwargs": kwargs,
            "cancelled": cancel.is_set(),
            "result": result.as_dict(),
            "duration_ms": duration_ms,
        })

        print(render.format_summary(result.stats, result.execution_seconds))
        if result.cache_enabled:
            print(
                f"Job id cache: {result.cache_initial_size} -> {result.cache_final_size} "
                f"(+{result.jobs_added})"
            )
        return 130 if cancel.is_set() else 0

    except ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        duration_s = time.monotonic() - start_time
        LOG.exception("job_scout run failed")
        print(f"FAILURE: {e}", file=sys.stderr)
        L.write_error_log({
            "ts": _now_iso(),
            "where": "cli.run",
            "run_id": run_id,
            "module": "job_scout",
            "kwargs": kwargs,
            "error": repr(e),
            "duration_ms": int(duration_s * 1000),
        })
        return 1


def cmd_latest(args: argparse.Namespace) -> int:
    try:
        settings = Settings.from_env_and_kwargs({"dry_run": True})
        rows = JobStore(settings.sqlite_path).latest_jobs(limit=args.limit)
    except ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        LOG.exception("Failed to list jobs: %s", e)
        print(f"ERROR: failed to list jobs: {e}", file=sys.stderr)
        return 1

    if not rows:
        print("No jobs stored yet.")
        return 0
    for row in rows:
        print(render.format_job_line(row))
    return 0


# ------------------------------- Argparse ------------------------------------
def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="python -m service.cli",
        description="Job scout command-line tools",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # run
    sp = sub.add_parser("run", help="Crawl, enrich and store job listings once.")
    sp.add_argument("--query", help="Search query (default: QUERY env or 'software developer').")
    sp.add_argument("--max-pages", type=int, help="Maximum result pages to crawl.")
    sp.add_argument(
        "--dry-run",
        action="store_true",
        help="Use mock enrichment and skip persistence.",
    )
    sp.add_argument(
        "--kwargs",
        metavar="k=v",
        nargs="*",
        help="Extra settings for the run (JSON values supported).",
    )
    sp.set_defaults(func=cmd_run)

    # latest
    sp = sub.add_parser("latest", help="List the most recently stored jobs.")
    sp.add_argument("--limit", type=int, default=15, help="Number of jobs to show.")
    sp.set_defaults(func=cmd_latest)

    return p


# --------------------------------- Main --------------------------------------
def main(argv: Iterable[str] | None = None) -> int:
    _ensure_logging()
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
