"""CLI argument parsing for hurtlocker."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from hurtlocker.core.constants import DEFAULT_TIMEOUT_MS
from hurtlocker.core.version import __version__


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        prog="hurtlocker",
        description="Hold a named filesystem lock while running a command",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a nightly export, waiting at most 30s for a concurrent run to finish
  hurtlocker run nightly-export --timeout-ms 30000 -- ./export.sh --full

  # Inspect a lock
  hurtlocker --lock-dir /var/run/myapp/locks status nightly-export

  # Remove a lock left behind by a crashed process
  hurtlocker reap nightly-export

Settings can also come from a JSON file (--config) or the environment:
  HURTLOCKER_LOCK_DIR, HURTLOCKER_LOCK_FILE_SUFFIX, HURTLOCKER_RETRY_INTERVAL_MS,
  HURTLOCKER_EMPTY_LOCK_GRACE_MS, HURTLOCKER_LIVENESS, HURTLOCKER_PROCESS_NAME
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, default=None, help="JSON file with lock settings")
    parser.add_argument("--lock-dir", type=Path, default=None, help="Directory holding lock files")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: LOG_LEVEL env var or INFO)",
    )
    parser.add_argument("--log-format", default="text", choices=["text", "json"], help="Log output format")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this rotating file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a command while holding a lock")
    run_parser.add_argument("lock_name", help="Name of the lock")
    run_parser.add_argument(
        "--timeout-ms",
        type=int,
        default=DEFAULT_TIMEOUT_MS,
        help=f"How long to wait for the lock in milliseconds (default: {DEFAULT_TIMEOUT_MS})",
    )
    run_parser.add_argument("--owner", default=None, help="Owner label for logs (default: hostname:pid)")

    status_parser = subparsers.add_parser("status", help="Show lock file status as JSON")
    status_parser.add_argument("lock_name", help="Name of the lock")

    reap_parser = subparsers.add_parser("reap", help="Delete the lock if its holder is no longer running")
    reap_parser.add_argument("lock_name", help="Name of the lock")

    if argv is None:
        argv = sys.argv[1:]
    # Everything after the first "--" is the wrapped command, passed through untouched.
    cmd: list[str] = []
    if "--" in argv:
        split_at = argv.index("--")
        argv, cmd = list(argv[:split_at]), list(argv[split_at + 1 :])

    args = parser.parse_args(argv)
    args.cmd = cmd
    if args.command == "run":
        if not args.cmd:
            parser.error("run: a command to execute is required after --")
        if args.timeout_ms < 0:
            parser.error("run: --timeout-ms must not be negative")
    return args
