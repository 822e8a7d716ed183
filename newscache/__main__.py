"""Command line entry point: ``python -m newscache <command>``."""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence

from newscache.runtime import NewsCacheRuntime

MIGRATIONS_DIR = Path(__file__).resolve().parent / "db" / "migrations"


def _migrate(runtime: NewsCacheRuntime) -> int:
    from alembic import command
    from alembic.config import Config

    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", runtime.settings.database_url)
    cfg.attributes["configure_logger"] = False
    command.upgrade(cfg, "head")
    print("[newscache] migrations applied")
    return 0


def _refresh_once(runtime: NewsCacheRuntime) -> int:
    runtime.prepare()
    summary = runtime.scheduler.run_tick()
    if summary is None:
        print("[newscache] refresh skipped")
        return 0
    print(
        f"[newscache] refresh completed: {summary.succeeded} successful, "
        f"{summary.failed} failed, {summary.expired_removed} expired removed"
    )
    return 1 if summary.failed and not summary.succeeded else 0


def _clear_expired(runtime: NewsCacheRuntime) -> int:
    runtime.prepare()
    removed = runtime.cache.clear_expired_cache()
    print(f"[newscache] cleared {removed} expired cache entries")
    return 0


def _run(runtime: NewsCacheRuntime) -> int:
    stop = threading.Event()

    def _handle(signum, frame):  # noqa: ANN001
        stop.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)
    runtime.start()
    try:
        stop.wait()
    finally:
        runtime.stop()
    return 0


COMMANDS = {
    "migrate": _migrate,
    "refresh-once": _refresh_once,
    "clear-expired": _clear_expired,
    "run": _run,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="newscache", description="News cache maintenance commands.")
    parser.add_argument("command", choices=sorted(COMMANDS), help="action to perform")
    args = parser.parse_args(argv)

    try:
        runtime = NewsCacheRuntime()
    except RuntimeError as exc:
        print(f"[newscache] configuration error: {exc}", file=sys.stderr)
        return 2
    return COMMANDS[args.command](runtime)


if __name__ == "__main__":
    raise SystemExit(main())
