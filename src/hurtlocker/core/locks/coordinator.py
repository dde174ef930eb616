"""Lock coordinator: named exclusive locks backed by lock files.

A lock named ``job-1`` is held while ``<lock_dir>/job-1<suffix>`` exists.
Processes race to create that file exclusively; the filesystem picks the
winner. The winner records the owner in its in-memory ownership cache and
writes its pid into the file so that other processes can later tell whether
the holder is still alive.

Acquisition retries on a fixed interval until the timeout, measured from the
first attempt, runs out. Each failed attempt also kicks off stale-lock
detection in the background: a lock file whose pid is no longer running, or
an empty lock file clearly older than the attempt, is deleted so that the next
attempt can succeed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import threading
import time
from collections.abc import AsyncIterator, Callable, Coroutine, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from hurtlocker.core.config import LockConfig
from hurtlocker.core.exceptions import LockCleanupError, LockTimeoutError
from hurtlocker.core.locks.liveness import ProcessLivenessOracle, create_liveness_oracle
from hurtlocker.core.locks.models import AcquireResult, LockStatus, ReleaseResult
from hurtlocker.core.locks.storage import LockFileStore, creation_time, file_identity
from hurtlocker.core.logging import with_log_context


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


@dataclass
class LockRecord:
    """Ownership cache entry for a lock held by this process."""

    owner: Any
    fd: int
    pid_write: asyncio.Task | None = None


class LockCoordinator:
    """Acquires and releases named exclusive locks for owners in this process.

    Args:
        settings: Lock settings (mapping, callable returning a mapping, or
            `LockConfig`), overlaid on the defaults
        logger: Logger for diagnostics; defaults to this module's logger
        liveness: Process-liveness oracle; built from ``settings`` if omitted
        store: Lock file store; built from ``settings`` if omitted

    Owners are compared with ``==``. Re-acquiring a lock already held by the
    same owner succeeds immediately, and one release frees it no matter how
    many times it was acquired.
    """

    def __init__(
        self,
        settings: Mapping[str, Any] | Callable[[], Mapping[str, Any] | None] | LockConfig | None = None,
        *,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        liveness: ProcessLivenessOracle | None = None,
        store: LockFileStore | None = None,
    ):
        self.config = LockConfig.from_settings(settings)
        self.logger = logger or logging.getLogger(__name__)
        self.liveness = liveness or create_liveness_oracle(
            self.config.liveness_check, process_name=self.config.process_name, logger=self.logger
        )
        self.store = store or LockFileStore(self.config.lock_dir, self.config.lock_file_suffix)

        self._records: dict[str, LockRecord] = {}
        self._state_lock = threading.RLock()
        self._detections: dict[str, asyncio.Task] = {}
        self._background: set[asyncio.Task] = set()

    # ==================== OWNERSHIP CACHE ====================

    def holder_of(self, lock_name: str) -> Any:
        """Owner holding ``lock_name`` in this process, or None."""
        with self._state_lock:
            record = self._records.get(lock_name)
            return None if record is None else record.owner

    def held_locks(self) -> dict[str, Any]:
        """Snapshot of lock name -> owner for every lock held by this process."""
        with self._state_lock:
            return {name: record.owner for name, record in self._records.items()}

    def lock_path(self, lock_name: str) -> Path:
        return self.store.path_for(lock_name)

    def _is_held_by(self, lock_name: str, owner: Any) -> bool:
        with self._state_lock:
            record = self._records.get(lock_name)
            return record is not None and record.owner == owner

    # ==================== ACQUIRE ====================

    async def ensure_lock_dir(self) -> None:
        """Create the lock directory if it does not exist yet. Idempotent."""
        await self.store.ensure_dir()

    async def acquire(self, lock_name: str, owner: Any, timeout_ms: float) -> AcquireResult:
        """Wait up to ``timeout_ms`` for exclusive ownership of ``lock_name``.

        Always resolves to an `AcquireResult`; contention is not an error.
        """
        if not lock_name:
            raise ValueError("lock_name must be a non-empty string")
        if timeout_ms < 0:
            raise ValueError(f"timeout_ms must not be negative, got {timeout_ms}")

        log = with_log_context(self.logger, lock_name=lock_name)
        first_call = time.monotonic()
        first_call_time = time.time()
        retry_delay = self.config.retry_interval_ms / 1000.0
        last_error: OSError | None = None

        while True:
            elapsed_ms = _elapsed_ms(first_call)
            if elapsed_ms > timeout_ms:
                # Leave the lock cleaned up for whoever asks next.
                self._schedule_stale_check(lock_name, first_call_time)
                holder = self.holder_of(lock_name)
                log.info(
                    "Unable to obtain exclusive lock %s for owner %r within the %sms specified because it is "
                    "currently owned by %r. Total elapsed time since first call is %dms.",
                    lock_name,
                    owner,
                    timeout_ms,
                    holder,
                    elapsed_ms,
                )
                return AcquireResult.timed_out(lock_name, owner, holder, elapsed_ms, last_error)

            log.debug(
                "Obtaining exclusive lock %s with timeout %sms for owner %r. Elapsed time so far is %dms.",
                lock_name,
                timeout_ms,
                owner,
                elapsed_ms,
            )
            if self._is_held_by(lock_name, owner):
                return AcquireResult.grant(lock_name, owner, _elapsed_ms(first_call))

            try:
                await self.ensure_lock_dir()
                fd = await self.store.create_exclusive(lock_name)
            except FileExistsError:
                log.info(
                    "Lock file %s for owner %r already exists. Will try again in approximately %dms.",
                    self.lock_path(lock_name),
                    owner,
                    self.config.retry_interval_ms,
                )
                self._schedule_stale_check(lock_name, first_call_time)
            except OSError as e:
                last_error = e
                log.error(
                    "Cannot create lock file %s: %s. Will try again in approximately %dms.",
                    self.lock_path(lock_name),
                    e,
                    self.config.retry_interval_ms,
                )
            else:
                record = LockRecord(owner=owner, fd=fd)
                with self._state_lock:
                    self._records[lock_name] = record
                record.pid_write = self._spawn(self._write_pid(lock_name, fd), f"lock-pid-{lock_name}")
                elapsed_ms = _elapsed_ms(first_call)
                log.debug("Obtained exclusive lock %s for owner %r after %dms.", lock_name, owner, elapsed_ms)
                return AcquireResult.grant(lock_name, owner, elapsed_ms)

            await asyncio.sleep(retry_delay)

    async def _write_pid(self, lock_name: str, fd: int) -> None:
        try:
            await self.store.write_pid(fd, os.getpid())
        except OSError as e:
            # The lock is held either way.
            self.logger.error("Could not record pid in lock file for %s: %s", lock_name, e)

    @contextlib.asynccontextmanager
    async def hold(self, lock_name: str, owner: Any, timeout_ms: float) -> AsyncIterator[AcquireResult]:
        """Hold ``lock_name`` for the duration of an ``async with`` block.

        Raises:
            LockTimeoutError: if the lock could not be obtained in time
        """
        result = await self.acquire(lock_name, owner, timeout_ms)
        if not result.granted:
            raise LockTimeoutError(lock_name, owner, holder=result.holder, elapsed_ms=result.elapsed_ms)
        try:
            yield result
        except BaseException:
            # The body's exception wins over a cleanup failure.
            try:
                await self.release(lock_name, owner)
            except LockCleanupError as e:
                self.logger.error("%s", e)
            raise
        await self.release(lock_name, owner)

    # ==================== RELEASE ====================

    async def release(self, lock_name: str, owner: Any) -> ReleaseResult:
        """Release ``lock_name`` if ``owner`` holds it in this process.

        Raises:
            LockCleanupError: if the lock file could not be deleted. Ownership
                has already been dropped from the cache at that point.
        """
        log = with_log_context(self.logger, lock_name=lock_name)
        log.debug("Releasing lock %s for owner %r.", lock_name, owner)

        with self._state_lock:
            record = self._records.get(lock_name)
            if record is None or record.owner != owner:
                actual_owner = None if record is None else record.owner
                if record is None:
                    log.info(
                        "Owner %r cannot release lock %s because it doesn't exist (or at least is not known to "
                        "this process). It may have been released by someone else.",
                        owner,
                        lock_name,
                    )
                else:
                    log.info("Owner %r cannot release lock %s because it is owned by %r.", owner, lock_name, actual_owner)
                return ReleaseResult.deny(lock_name, owner, actual_owner)
            del self._records[lock_name]

        if record.pid_write is not None and not record.pid_write.done():
            await record.pid_write

        lock_path = self.lock_path(lock_name)
        log.debug("Closing lock file %s.", lock_path)
        try:
            await self.store.close(record.fd)
        except OSError as e:
            log.error("Error closing lock file %s: %s", lock_path, e)

        log.debug("Deleting lock file %s.", lock_path)
        try:
            await self.store.remove(lock_name)
        except OSError as e:
            log.error("Error deleting lock file %s: %s", lock_path, e)
            raise LockCleanupError(lock_name, str(lock_path), original_error=e) from e

        return ReleaseResult.release(lock_name, owner)

    # ==================== STALE LOCK DETECTION ====================

    def _schedule_stale_check(self, lock_name: str, first_call_time: float) -> None:
        with self._state_lock:
            running = self._detections.get(lock_name)
            if running is not None and not running.done():
                return
            task = self._spawn(self.detect_stale_lock(lock_name, first_call_time), f"lock-stale-check-{lock_name}")
            self._detections[lock_name] = task
        task.add_done_callback(lambda done: self._forget_detection(lock_name, done))

    def _forget_detection(self, lock_name: str, task: asyncio.Task) -> None:
        with self._state_lock:
            if self._detections.get(lock_name) is task:
                del self._detections[lock_name]

    async def detect_stale_lock(self, lock_name: str, first_call_time: float | None = None) -> bool:
        """Delete the lock file for ``lock_name`` if its holder is gone.

        ``first_call_time`` (epoch seconds) is when the acquirer first tried;
        an empty lock file only counts as abandoned if it was created well
        before that. Never raises; returns True if this call deleted the file.
        """
        log = with_log_context(self.logger, lock_name=lock_name)
        if self.holder_of(lock_name) is not None:
            return False
        if first_call_time is None:
            first_call_time = time.time()
        lock_path = self.lock_path(lock_name)

        try:
            stat_result = await self.store.stat(lock_name)
            content = await self.store.read(lock_name)
        except FileNotFoundError:
            return False
        except (OSError, UnicodeDecodeError) as e:
            log.error("Cannot read lock file %s while checking for a stale lock: %s", lock_path, e)
            return False

        content = content.strip()
        if not content:
            grace_seconds = self.config.empty_lock_grace_ms / 1000.0
            created_at = creation_time(stat_result)
            if created_at >= first_call_time - grace_seconds:
                log.debug("Empty lock file %s is recent; its owner may still be writing its pid.", lock_path)
                return False
            log.error(
                "Lock file %s has no pid and predates this acquisition attempt. Deleting the lock.", lock_path
            )
            return await self._remove_stale_lock(lock_name, stat_result)

        try:
            pid = int(content)
        except ValueError:
            log.error("Lock file %s holds an unparseable pid %r.", lock_path, content[:32])
            return False

        try:
            alive = await asyncio.to_thread(self.liveness.is_alive, pid)
        except Exception as e:
            log.error("Cannot determine whether pid %s holding lock %s is alive: %s", pid, lock_name, e)
            return False
        if alive:
            return False

        log.error("Process with pid=%s, owner of lock %s, does not exist. Deleting the lock.", pid, lock_name)
        return await self._remove_stale_lock(lock_name, stat_result)

    async def _remove_stale_lock(self, lock_name: str, stat_result: os.stat_result) -> bool:
        lock_path = self.lock_path(lock_name)
        try:
            removed = await self.store.remove_if_same_file(lock_name, file_identity(stat_result))
        except FileNotFoundError:
            # Another detector or the owner got there first.
            return False
        except OSError as e:
            self.logger.error("Error while deleting stale lock %s: %s", lock_path, e)
            return False
        if not removed:
            self.logger.info("Lock file %s was replaced by a new holder; leaving it in place.", lock_path)
        return removed

    async def read_lock_status(self, lock_name: str) -> LockStatus:
        """Describe the lock file for ``lock_name`` without changing anything."""
        lock_path = str(self.lock_path(lock_name))
        holder = self.holder_of(lock_name)
        try:
            content = (await self.store.read(lock_name)).strip()
        except FileNotFoundError:
            return LockStatus(lock_name, lock_path, locked=False, holder=holder)
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error("Cannot read lock file %s: %s", lock_path, e)
            return LockStatus(lock_name, lock_path, locked=True, holder=holder)

        try:
            pid = int(content) if content else None
        except ValueError:
            pid = None
        pid_alive = None
        if pid is not None:
            try:
                pid_alive = await asyncio.to_thread(self.liveness.is_alive, pid)
            except Exception as e:
                self.logger.error("Cannot determine whether pid %s holding lock %s is alive: %s", pid, lock_name, e)
        return LockStatus(lock_name, lock_path, locked=True, pid=pid, pid_alive=pid_alive, holder=holder)

    # ==================== BACKGROUND TASKS ====================

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._run_quietly(coro, name), name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _run_quietly(self, coro: Coroutine[Any, Any, Any], name: str) -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            raise
        except Exception:
            # Best effort only; acquire/release outcomes are already decided.
            self.logger.exception("Background lock task %s failed", name)
            return None

    async def drain(self) -> None:
        """Wait until pending pid writes and stale-lock checks have finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
