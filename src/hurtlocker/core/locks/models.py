"""Result values returned by the lock coordinator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class AcquireStatus(Enum):
    """Final outcome of an acquisition call."""

    GRANTED = "granted"
    TIMED_OUT = "timed_out"


class ReleaseStatus(Enum):
    """Final outcome of a release call."""

    RELEASED = "released"
    DENIED = "denied"


@dataclass(frozen=True)
class AcquireResult:
    """Outcome of `LockCoordinator.acquire`.

    Attributes:
        status: GRANTED or TIMED_OUT
        lock_name: Lock that was requested
        owner: Owner that requested it
        holder: Owner this process knows to hold the lock. Equal to ``owner``
            when granted; on timeout the cached holder, or None when the lock
            is held by another process
        elapsed_ms: Milliseconds since the first attempt
        last_error: Last non-contention error seen while trying (for example a
            permission failure creating the lock directory), if any
    """

    status: AcquireStatus
    lock_name: str
    owner: Any
    holder: Any
    elapsed_ms: int
    last_error: OSError | None = None

    @property
    def granted(self) -> bool:
        return self.status is AcquireStatus.GRANTED

    @classmethod
    def grant(cls, lock_name: str, owner: Any, elapsed_ms: int) -> AcquireResult:
        return cls(AcquireStatus.GRANTED, lock_name, owner, owner, elapsed_ms)

    @classmethod
    def timed_out(
        cls, lock_name: str, owner: Any, holder: Any, elapsed_ms: int, last_error: OSError | None = None
    ) -> AcquireResult:
        return cls(AcquireStatus.TIMED_OUT, lock_name, owner, holder, elapsed_ms, last_error)


@dataclass(frozen=True)
class ReleaseResult:
    """Outcome of `LockCoordinator.release`.

    ``holder`` is the owner found in the ownership cache: the releasing owner
    when released, the actual owner (or None) when denied.
    """

    status: ReleaseStatus
    lock_name: str
    owner: Any
    holder: Any

    @property
    def released(self) -> bool:
        return self.status is ReleaseStatus.RELEASED

    @classmethod
    def release(cls, lock_name: str, owner: Any) -> ReleaseResult:
        return cls(ReleaseStatus.RELEASED, lock_name, owner, owner)

    @classmethod
    def deny(cls, lock_name: str, owner: Any, holder: Any) -> ReleaseResult:
        return cls(ReleaseStatus.DENIED, lock_name, owner, holder)


@dataclass(frozen=True)
class LockStatus:
    """Diagnostic snapshot of a lock file, as reported by `read_lock_status`."""

    lock_name: str
    lock_path: str
    locked: bool
    pid: int | None = None
    pid_alive: bool | None = None
    holder: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "lock_name": self.lock_name,
            "lock_path": self.lock_path,
            "locked": self.locked,
            "pid": self.pid,
            "pid_alive": self.pid_alive,
            "holder": self.holder,
        }
