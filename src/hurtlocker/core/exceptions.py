"""Custom exceptions for hurtlocker.

Only failures a caller can act on are exceptions. Ordinary lock outcomes
(timed out, denied) are reported as result values by the coordinator.
"""

from __future__ import annotations

from typing import Any


class HurtLockerError(Exception):
    """Base exception for all hurtlocker errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(HurtLockerError):
    """Exception raised for invalid lock settings.

    Examples:
        - Unreadable or malformed JSON config file
        - Negative retry interval
        - Empty lock file suffix
    """

    def __init__(
        self, message: str, config_file: str | None = None, field: str | None = None, details: str | None = None
    ):
        self.config_file = config_file
        self.field = field
        super().__init__(message, details)


class LockTimeoutError(HurtLockerError):
    """Exception raised when a lock could not be obtained within its timeout.

    Attributes:
        lock_name: Name of the contended lock
        owner: Owner that asked for the lock
        holder: Last owner known to this process, or None if held elsewhere
        elapsed_ms: Time spent waiting since the first attempt
    """

    def __init__(self, lock_name: str, owner: Any, holder: Any = None, elapsed_ms: float = 0.0):
        self.lock_name = lock_name
        self.owner = owner
        self.holder = holder
        self.elapsed_ms = elapsed_ms

        message = f"Unable to obtain exclusive lock '{lock_name}' for owner {owner!r}"
        if holder is not None:
            details = f"held by {holder!r} after {elapsed_ms:.0f}ms"
        else:
            details = f"held by another process after {elapsed_ms:.0f}ms"
        super().__init__(message, details)


class LockCleanupError(HurtLockerError):
    """Exception raised when a released lock file could not be deleted.

    The in-memory ownership has already been dropped when this is raised.
    """

    def __init__(self, lock_name: str, lock_path: str, original_error: Exception | None = None):
        self.lock_name = lock_name
        self.lock_path = lock_path
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(f"Released lock '{lock_name}' but could not delete {lock_path}", details)


class LivenessCheckError(HurtLockerError):
    """Exception raised when the process table cannot answer a liveness query."""

    def __init__(self, message: str, pid: int | None = None, original_error: Exception | None = None):
        self.pid = pid
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(message, details)
