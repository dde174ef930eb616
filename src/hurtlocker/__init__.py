"""
hurtlocker - named exclusive locks coordinated through the filesystem.

Independent processes (or independent owners inside one process) serialize
access to a shared resource by racing to create a lock file; no lock server
is involved. Locks left behind by crashed processes are reclaimed.

Usage:
    coordinator = LockCoordinator({"lock_dir": "/var/run/myapp/locks"})
    async with coordinator.hold("job-1", owner="worker-7", timeout_ms=10000):
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hurtlocker.core.lazy import make_getattr

__all__ = [
    "__version__",
    "AcquireResult",
    "AcquireStatus",
    "LockConfig",
    "LockCoordinator",
    "LockTimeoutError",
    "ReleaseResult",
    "ReleaseStatus",
    "main",
]

if TYPE_CHECKING:
    from hurtlocker.cli.main import main
    from hurtlocker.core.config import LockConfig
    from hurtlocker.core.exceptions import LockTimeoutError
    from hurtlocker.core.locks import AcquireResult, AcquireStatus, LockCoordinator, ReleaseResult, ReleaseStatus
    from hurtlocker.core.version import __version__

__getattr__ = make_getattr(
    __name__,
    {
        "__version__": "hurtlocker.core.version",
        "AcquireResult": "hurtlocker.core.locks",
        "AcquireStatus": "hurtlocker.core.locks",
        "LockConfig": "hurtlocker.core.config",
        "LockCoordinator": "hurtlocker.core.locks",
        "LockTimeoutError": "hurtlocker.core.exceptions",
        "ReleaseResult": "hurtlocker.core.locks",
        "ReleaseStatus": "hurtlocker.core.locks",
        "main": "hurtlocker.cli.main",
    },
)
