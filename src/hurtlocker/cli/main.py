"""CLI entrypoint for hurtlocker."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import socket
import sys

from hurtlocker.cli.parser import parse_arguments
from hurtlocker.core.config import LockConfig, LogConfig, load_settings
from hurtlocker.core.constants import EXIT_LOCK_TIMEOUT
from hurtlocker.core.exceptions import ConfigurationError, LockCleanupError
from hurtlocker.core.locks import LockCoordinator
from hurtlocker.core.logging import flush_logging_handlers, setup_logging


async def _run_locked(coordinator: LockCoordinator, lock_name: str, owner: str, timeout_ms: int, cmd: list[str]) -> int:
    logger = coordinator.logger
    result = await coordinator.acquire(lock_name, owner, timeout_ms)
    if not result.granted:
        print(
            f"hurtlocker: lock '{lock_name}' is busy; gave up after {result.elapsed_ms}ms",
            file=sys.stderr,
        )
        await coordinator.drain()
        return EXIT_LOCK_TIMEOUT

    try:
        process = await asyncio.create_subprocess_exec(*cmd)
        return_code = await process.wait()
        logger.info("Command %s exited with %d while holding lock %s", cmd[0], return_code, lock_name)
        return return_code
    except OSError as e:
        print(f"hurtlocker: cannot run {cmd[0]}: {e}", file=sys.stderr)
        return 127
    finally:
        try:
            await coordinator.release(lock_name, owner)
        except LockCleanupError as e:
            logger.error("%s", e)
        await coordinator.drain()


async def _show_status(coordinator: LockCoordinator, lock_name: str) -> int:
    status = await coordinator.read_lock_status(lock_name)
    print(json.dumps(status.to_dict(), indent=2, default=str))
    return 0


async def _reap(coordinator: LockCoordinator, lock_name: str) -> int:
    removed = await coordinator.detect_stale_lock(lock_name)
    status = await coordinator.read_lock_status(lock_name)
    if removed:
        print(f"Removed stale lock {status.lock_path}")
    elif status.locked:
        print(f"Lock {status.lock_path} is held (pid {status.pid})")
    else:
        print(f"Lock {status.lock_path} is free")
    return 1 if status.locked else 0


def main(argv: list[str] | None = None) -> int:
    """Run the hurtlocker command line and return its exit code."""
    args = parse_arguments(argv)
    logger = setup_logging(LogConfig(level=args.log_level, log_format=args.log_format, log_file=args.log_file))

    try:
        settings = load_settings(args.config)
        if args.lock_dir is not None:
            settings["lock_dir"] = args.lock_dir
        config = LockConfig.from_settings(settings)
    except ConfigurationError as e:
        print(f"hurtlocker: {e}", file=sys.stderr)
        return 2

    coordinator = LockCoordinator(config, logger=logging.getLogger("hurtlocker.cli"))

    try:
        if args.command == "run":
            owner = args.owner or f"{socket.gethostname()}:{os.getpid()}"
            return asyncio.run(_run_locked(coordinator, args.lock_name, owner, args.timeout_ms, args.cmd))
        if args.command == "status":
            return asyncio.run(_show_status(coordinator, args.lock_name))
        return asyncio.run(_reap(coordinator, args.lock_name))
    finally:
        flush_logging_handlers(logger)


if __name__ == "__main__":
    sys.exit(main())
