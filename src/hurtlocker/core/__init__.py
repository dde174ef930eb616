"""Core module - Foundation components.

This module provides the building blocks used throughout the package:
- Version information
- Custom exceptions
- Configuration dataclasses
- Constants and defaults
"""

from hurtlocker.core.version import __version__

from hurtlocker.core.exceptions import (
    HurtLockerError,
    ConfigurationError,
    LockTimeoutError,
    LockCleanupError,
    LivenessCheckError,
)

from hurtlocker.core.config import (
    LockConfig,
    LogConfig,
    create_default_config,
    load_settings,
)

from hurtlocker.core.constants import (
    DEFAULT_LOCK_DIR,
    DEFAULT_LOCK_FILE_SUFFIX,
    DEFAULT_RETRY_INTERVAL_MS,
    DEFAULT_EMPTY_LOCK_GRACE_MS,
    DEFAULT_TIMEOUT_MS,
    ENV_VAR_MAPPING,
    SETTING_ALIASES,
)

__all__ = [
    # Version
    '__version__',
    # Exceptions
    'HurtLockerError',
    'ConfigurationError',
    'LockTimeoutError',
    'LockCleanupError',
    'LivenessCheckError',
    # Config
    'LockConfig',
    'LogConfig',
    'create_default_config',
    'load_settings',
    # Constants
    'DEFAULT_LOCK_DIR',
    'DEFAULT_LOCK_FILE_SUFFIX',
    'DEFAULT_RETRY_INTERVAL_MS',
    'DEFAULT_EMPTY_LOCK_GRACE_MS',
    'DEFAULT_TIMEOUT_MS',
    'ENV_VAR_MAPPING',
    'SETTING_ALIASES',
]
