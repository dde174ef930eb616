"""Constants and default values for hurtlocker.

This module centralizes defaults, setting-name aliases and environment
variable names used by the configuration layer.
"""

from pathlib import Path

# ==================== LOCK DEFAULTS ====================

DEFAULT_LOCK_DIR: Path = Path("locks")
DEFAULT_LOCK_FILE_SUFFIX: str = ".lock"
DEFAULT_RETRY_INTERVAL_MS: int = 100
# Empty lock files younger than this (relative to the acquirer's first call)
# are treated as still being written by their creator.
DEFAULT_EMPTY_LOCK_GRACE_MS: int = 5000
DEFAULT_LIVENESS_CHECK: str = "auto"
DEFAULT_TIMEOUT_MS: int = 10000

# ==================== LOGGING DEFAULTS ====================

LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB max per log file
LOG_FILE_BACKUP_COUNT: int = 5  # Number of backup log files to keep

# ==================== CLI ====================

# sysexits.h EX_TEMPFAIL, returned when a lock could not be obtained in time
EXIT_LOCK_TIMEOUT: int = 75

# ==================== SETTING NAMES ====================

# Accepted spellings for each setting, including the camelCase keys of
# older JSON configuration files.
SETTING_ALIASES: dict[str, str] = {
    "lock_dir": "lock_dir",
    "lockDir": "lock_dir",
    "lockDirectory": "lock_dir",
    "lock_file_suffix": "lock_file_suffix",
    "lockFileSuffix": "lock_file_suffix",
    "retry_interval_ms": "retry_interval_ms",
    "retryIntervalMillis": "retry_interval_ms",
    "lockRetryTimeMillis": "retry_interval_ms",
    "empty_lock_grace_ms": "empty_lock_grace_ms",
    "emptyLockGraceMillis": "empty_lock_grace_ms",
    "liveness_check": "liveness_check",
    "livenessCheck": "liveness_check",
    "process_name": "process_name",
    "processName": "process_name",
}

# Environment variable overrides (setting -> env var)
ENV_VAR_MAPPING: dict[str, str] = {
    "lock_dir": "HURTLOCKER_LOCK_DIR",
    "lock_file_suffix": "HURTLOCKER_LOCK_FILE_SUFFIX",
    "retry_interval_ms": "HURTLOCKER_RETRY_INTERVAL_MS",
    "empty_lock_grace_ms": "HURTLOCKER_EMPTY_LOCK_GRACE_MS",
    "liveness_check": "HURTLOCKER_LIVENESS",
    "process_name": "HURTLOCKER_PROCESS_NAME",
}

LIVENESS_ENV_VAR: str = ENV_VAR_MAPPING["liveness_check"]
