"""Process-liveness oracles used to spot locks left behind by dead processes.

The coordinator only asks one question: "is a process with this pid running?".
Implementations may consult the OS process table or signal the pid directly.
"""

from __future__ import annotations

import errno
import logging
import os
from typing import Protocol

import psutil

from hurtlocker.core.constants import DEFAULT_LIVENESS_CHECK, LIVENESS_ENV_VAR
from hurtlocker.core.exceptions import LivenessCheckError


class ProcessLivenessOracle(Protocol):
    """Answers whether a process id belongs to a running process."""

    name: str

    def is_alive(self, pid: int) -> bool:
        """Return True if ``pid`` is currently running."""


def _valid_pid(pid: object) -> int | None:
    if isinstance(pid, bool):
        return None
    try:
        normalized_pid = int(pid)  # type: ignore[call-overload]
    except (TypeError, ValueError, OverflowError):
        return None
    if normalized_pid <= 0:
        return None
    return normalized_pid


class SignalLivenessOracle:
    """Checks liveness with signal 0, which probes a pid without delivering anything."""

    name = "signal"

    def is_alive(self, pid: int) -> bool:
        normalized_pid = _valid_pid(pid)
        if normalized_pid is None:
            return False
        try:
            os.kill(normalized_pid, 0)
            return True
        except ProcessLookupError:
            return False
        except PermissionError:
            # EPERM means the process exists but we do not have permission to signal it.
            return True
        except OverflowError:
            return False
        except OSError as e:
            if e.errno == errno.EPERM:
                return True
            raise LivenessCheckError("Cannot probe process", pid=normalized_pid, original_error=e) from e


class ProcessTableLivenessOracle:
    """Checks liveness against the OS process table via psutil.

    Zombie processes count as dead. When ``process_name`` is set, only
    processes whose executable name matches count as live lock holders, so a
    recycled pid now used by an unrelated program does not keep a lock alive.
    """

    name = "process_table"

    def __init__(self, process_name: str | None = None):
        self.process_name = process_name

    def running_pids(self) -> set[int]:
        """Return the pids of running processes matching ``process_name``."""
        try:
            if self.process_name is None:
                return set(psutil.pids())
            return {
                proc.info["pid"]
                for proc in psutil.process_iter(["pid", "name"])
                if proc.info.get("name") == self.process_name
            }
        except psutil.Error as e:
            raise LivenessCheckError("Cannot list running processes", original_error=e) from e

    def is_alive(self, pid: int) -> bool:
        normalized_pid = _valid_pid(pid)
        if normalized_pid is None:
            return False
        try:
            process = psutil.Process(normalized_pid)
            if process.status() == psutil.STATUS_ZOMBIE:
                return False
            if self.process_name is not None:
                return process.name() == self.process_name
            return True
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            # Someone else's process: it exists.
            return True
        except psutil.Error as e:
            raise LivenessCheckError("Cannot inspect process", pid=normalized_pid, original_error=e) from e


def create_liveness_oracle(
    name: str | None = None,
    *,
    process_name: str | None = None,
    logger: logging.Logger | None = None,
) -> ProcessLivenessOracle:
    """Create a liveness oracle from explicit value or environment override."""
    log = logger or logging.getLogger(__name__)
    requested = (name or os.environ.get(LIVENESS_ENV_VAR, DEFAULT_LIVENESS_CHECK)).strip().lower()

    if requested in ("auto", "psutil", "process_table"):
        return ProcessTableLivenessOracle(process_name=process_name)

    if requested == "signal":
        if process_name is not None:
            log.warning("Signal liveness check cannot filter by process name; ignoring '%s'", process_name)
        return SignalLivenessOracle()

    log.warning("Unknown liveness check '%s'; falling back to auto selection", requested)
    return create_liveness_oracle("auto", process_name=process_name, logger=log)
