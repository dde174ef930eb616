"""Lock file storage.

Every filesystem operation on lock files goes through `LockFileStore`. All
calls are awaitable and run off the event loop, so a slow or network-mounted
lock directory never stalls other coroutines. The held lock file is a plain
file descriptor rather than an aiofiles handle: it must outlive the event
loop that created it.

Design principles:
- Exclusive create is the only synchronization primitive; it either creates
  the file or fails with FileExistsError.
- The file body (the owner's pid) is informational and is written after the
  lock is already held.
- Destructive operations report "already gone" as FileNotFoundError and let
  callers decide whether that is benign.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import aiofiles
import aiofiles.os

# (st_dev, st_ino) of a lock file, used to notice a file replaced by another holder.
FileIdentity = tuple[int, int]


def _write_all(fd: int, payload: bytes) -> None:
    """Write complete payload to fd, handling short writes."""
    total_written = 0
    while total_written < len(payload):
        written = os.write(fd, payload[total_written:])
        if written <= 0:
            raise OSError("short write while recording lock owner pid")
        total_written += written


def file_identity(stat_result: os.stat_result) -> FileIdentity:
    return (stat_result.st_dev, stat_result.st_ino)


def creation_time(stat_result: os.stat_result) -> float:
    """Best available creation timestamp: birth time where the platform has it, else ctime."""
    birthtime = getattr(stat_result, "st_birthtime", None)
    if birthtime is not None:
        return float(birthtime)
    return stat_result.st_ctime


class LockFileStore:
    """Maps lock names to files under ``lock_dir`` and performs I/O on them."""

    def __init__(self, lock_dir: Path, lock_file_suffix: str):
        self.lock_dir = Path(lock_dir)
        self.lock_file_suffix = lock_file_suffix

    def path_for(self, lock_name: str) -> Path:
        return self.lock_dir / f"{lock_name}{self.lock_file_suffix}"

    async def ensure_dir(self) -> None:
        """Create the lock directory (and parents) unless it already exists."""
        await aiofiles.os.makedirs(self.lock_dir, exist_ok=True)

    async def create_exclusive(self, lock_name: str) -> int:
        """Create the lock file, failing with FileExistsError if it is present.

        Returns an open file descriptor; the caller owns it until `close`.
        """
        flags = os.O_CREAT | os.O_EXCL | os.O_WRONLY
        return await asyncio.to_thread(os.open, str(self.path_for(lock_name)), flags, 0o644)

    @staticmethod
    async def write_pid(fd: int, pid: int) -> None:
        await asyncio.to_thread(_write_all, fd, str(pid).encode("ascii"))

    @staticmethod
    async def close(fd: int) -> None:
        await asyncio.to_thread(os.close, fd)

    async def read(self, lock_name: str) -> str:
        async with aiofiles.open(self.path_for(lock_name), encoding="utf-8") as f:
            return await f.read()

    async def stat(self, lock_name: str) -> os.stat_result:
        return await aiofiles.os.stat(self.path_for(lock_name))

    async def remove(self, lock_name: str) -> None:
        await aiofiles.os.remove(self.path_for(lock_name))

    async def remove_if_same_file(self, lock_name: str, identity: FileIdentity) -> bool:
        """Delete the lock file only if it is still the file identified by ``identity``.

        Returns False if the path now names a different file. Raises
        FileNotFoundError if it is gone.
        """
        current = file_identity(await self.stat(lock_name))
        if current != identity:
            return False
        await self.remove(lock_name)
        return True
