"""Configuration dataclasses for hurtlocker.

Settings are resolved once, before a coordinator is built, and handed to it
as a `LockConfig`. They can come from code (a mapping, a callable returning a
mapping, or a `LockConfig`), a JSON file, or environment variables.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from hurtlocker.core.constants import (
    DEFAULT_EMPTY_LOCK_GRACE_MS,
    DEFAULT_LIVENESS_CHECK,
    DEFAULT_LOCK_DIR,
    DEFAULT_LOCK_FILE_SUFFIX,
    DEFAULT_RETRY_INTERVAL_MS,
    ENV_VAR_MAPPING,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
    SETTING_ALIASES,
)
from hurtlocker.core.exceptions import ConfigurationError


def create_default_config() -> dict[str, Any]:
    """Return the default lock settings as a fresh dictionary."""
    return {
        "lock_dir": DEFAULT_LOCK_DIR,
        "lock_file_suffix": DEFAULT_LOCK_FILE_SUFFIX,
        "retry_interval_ms": DEFAULT_RETRY_INTERVAL_MS,
        "empty_lock_grace_ms": DEFAULT_EMPTY_LOCK_GRACE_MS,
        "liveness_check": DEFAULT_LIVENESS_CHECK,
        "process_name": None,
    }


def _as_non_negative_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError("Invalid setting", field=name, details=f"expected milliseconds, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError("Invalid setting", field=name, details=f"expected milliseconds, got {value!r}") from e
    if number < 0:
        raise ConfigurationError("Invalid setting", field=name, details=f"must not be negative, got {number}")
    return number


@dataclass
class LockConfig:
    """Resolved configuration for a lock coordinator.

    Attributes:
        lock_dir: Directory holding lock files, created on demand (default: ./locks)
        lock_file_suffix: Suffix appended to a lock name to form its file name (default: .lock)
        retry_interval_ms: Fixed delay between acquisition attempts (default: 100)
        empty_lock_grace_ms: How much older than an acquirer's first call an empty
            lock file must be before it is reclaimed (default: 5000)
        liveness_check: Process-liveness oracle name: auto, psutil, process_table, signal
        process_name: Only processes with this executable name count as live holders
        extra: Unrecognized settings, kept as given
    """

    lock_dir: Path = DEFAULT_LOCK_DIR
    lock_file_suffix: str = DEFAULT_LOCK_FILE_SUFFIX
    retry_interval_ms: int = DEFAULT_RETRY_INTERVAL_MS
    empty_lock_grace_ms: int = DEFAULT_EMPTY_LOCK_GRACE_MS
    liveness_check: str = DEFAULT_LIVENESS_CHECK
    process_name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.lock_dir = Path(self.lock_dir)
        if not isinstance(self.lock_file_suffix, str) or not self.lock_file_suffix:
            raise ConfigurationError(
                "Invalid setting", field="lock_file_suffix", details="lock file suffix must be a non-empty string"
            )
        if os.sep in self.lock_file_suffix:
            raise ConfigurationError(
                "Invalid setting", field="lock_file_suffix", details="lock file suffix must not contain a path separator"
            )
        self.retry_interval_ms = _as_non_negative_int("retry_interval_ms", self.retry_interval_ms)
        self.empty_lock_grace_ms = _as_non_negative_int("empty_lock_grace_ms", self.empty_lock_grace_ms)
        self.liveness_check = str(self.liveness_check).strip().lower()
        if self.process_name is not None:
            self.process_name = str(self.process_name).strip() or None

    @classmethod
    def from_settings(
        cls, settings: Mapping[str, Any] | Callable[[], Mapping[str, Any] | None] | LockConfig | None = None
    ) -> LockConfig:
        """Overlay user settings on the defaults.

        ``settings`` may be a mapping, a zero-argument callable returning one,
        or an existing ``LockConfig`` (returned as an independent copy). The
        supplied object is never mutated.
        """
        if isinstance(settings, LockConfig):
            return cls(**{**settings.to_dict(), "extra": dict(settings.extra)})
        if callable(settings):
            settings = settings()
        if settings is not None and not isinstance(settings, Mapping):
            raise ConfigurationError("Lock settings must be a mapping", details=f"got {type(settings).__name__}")

        known = create_default_config()
        extra: dict[str, Any] = {}
        for key, value in (settings or {}).items():
            canonical = SETTING_ALIASES.get(key)
            if canonical is None:
                extra[key] = value
            else:
                known[canonical] = value
        return cls(**known, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        """Known settings as a dictionary (``extra`` is not included)."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extra"}


@dataclass
class LogConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level string (default: LOG_LEVEL env var, then "INFO")
        log_format: "text" or "json" (default: "text")
        log_file: Optional path of a rotating log file
        file_max_bytes: Maximum size per log file (default: 10MB)
        file_backup_count: Number of backup log files (default: 5)
    """

    level: str | None = None
    log_format: str = "text"
    log_file: Path | None = None
    file_max_bytes: int = LOG_FILE_MAX_BYTES
    file_backup_count: int = LOG_FILE_BACKUP_COUNT


def _read_config_file(config_file: Path) -> dict[str, Any]:
    try:
        with open(config_file, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError("Config file not found", config_file=str(config_file)) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError("Invalid JSON in config file", config_file=str(config_file), details=str(e)) from e
    except OSError as e:
        raise ConfigurationError("Cannot read config file", config_file=str(config_file), details=str(e)) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Config file must contain a JSON object", config_file=str(config_file), details=type(data).__name__
        )
    return data


def load_settings(config_file: Path | str | None = None, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Merge settings from the available sources.

    Priority: 1) Environment variables, 2) JSON config file, 3) Defaults.
    Unknown keys in the config file are passed through unchanged.
    """
    env = os.environ if environ is None else environ
    settings = create_default_config()

    if config_file is not None:
        for key, value in _read_config_file(Path(config_file)).items():
            settings[SETTING_ALIASES.get(key, key)] = value

    for setting, env_var in ENV_VAR_MAPPING.items():
        value = env.get(env_var)
        if value is not None and value.strip():
            settings[setting] = value.strip()

    return settings
