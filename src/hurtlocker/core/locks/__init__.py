"""Locking subsystem for cross-process coordination.

This package centralizes lock acquisition/release behavior behind a single
coordinator so application modules can use a stable API.
"""

from hurtlocker.core.locks.coordinator import LockCoordinator, LockRecord
from hurtlocker.core.locks.liveness import (
    ProcessLivenessOracle,
    ProcessTableLivenessOracle,
    SignalLivenessOracle,
    create_liveness_oracle,
)
from hurtlocker.core.locks.models import (
    AcquireResult,
    AcquireStatus,
    LockStatus,
    ReleaseResult,
    ReleaseStatus,
)
from hurtlocker.core.locks.storage import LockFileStore

__all__ = [
    "AcquireResult",
    "AcquireStatus",
    "LockCoordinator",
    "LockFileStore",
    "LockRecord",
    "LockStatus",
    "ProcessLivenessOracle",
    "ProcessTableLivenessOracle",
    "ReleaseResult",
    "ReleaseStatus",
    "SignalLivenessOracle",
    "create_liveness_oracle",
]
