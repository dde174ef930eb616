"""Logging helpers for hurtlocker."""

import contextlib
import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler

from hurtlocker.core.config import LogConfig

_VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
# Record attribute carrying the fields attached by `with_log_context`.
LOG_CONTEXT_ATTR = "log_context"


def _safe_record_message(record: logging.LogRecord) -> str:
    try:
        return record.getMessage()
    except Exception:
        # Keep logging resilient when message formatting fails (bad placeholders or broken __repr__ of an owner).
        return f"{getattr(record, 'msg', '')} [log-message-format-error]"


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging output.

    Each log record is a single JSON object on one line. Context attached
    with `with_log_context` (for example ``lock_name``) becomes top-level keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _safe_record_message(record),
            "process": record.process,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        context = getattr(record, LOG_CONTEXT_ATTR, None)
        if isinstance(context, dict):
            for key, value in context.items():
                log_entry.setdefault(key, value)
        return json.dumps(log_entry, default=str)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that stamps its context on every record.

    Each field is set as a record attribute (usable in ``%(lock_name)s``
    format strings) and the whole context is also kept under ``log_context``
    for `JSONFormatter`.
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = kwargs.get("extra")
        context = dict(self.extra)
        if isinstance(extra, dict):
            context.update(extra)
        kwargs["extra"] = {**context, LOG_CONTEXT_ATTR: context}
        return msg, kwargs


def _unwrap_logger(logger: logging.Logger | logging.LoggerAdapter | None) -> logging.Logger | None:
    current = logger
    while isinstance(current, logging.LoggerAdapter):
        current = current.logger
    if isinstance(current, logging.Logger):
        return current
    return None


def with_log_context(
    logger: logging.Logger | logging.LoggerAdapter | object, **context: object
) -> logging.Logger | logging.LoggerAdapter | object:
    """Return a logger enriched with persistent contextual fields."""
    if not isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        # Preserve test doubles/mocks that may not satisfy logging interfaces.
        return logger

    base_logger = _unwrap_logger(logger)
    if base_logger is None:
        return logger

    normalized_context = {k: v for k, v in context.items() if v is not None}
    existing_context = {}
    if isinstance(logger, logging.LoggerAdapter):
        existing_context = dict(getattr(logger, "extra", {}))

    existing_context.update(normalized_context)
    return ContextLoggerAdapter(base_logger, existing_context)


def flush_logging_handlers(logger: logging.Logger | logging.LoggerAdapter | None = None) -> None:
    """Flush logger handlers, including propagated root handlers."""
    handlers: list[logging.Handler] = []
    seen: set[int] = set()

    unwrapped_logger = _unwrap_logger(logger)

    if unwrapped_logger is not None:
        current: logging.Logger | None = unwrapped_logger
        while current is not None:
            handlers.extend(current.handlers)
            if not current.propagate:
                break
            current = current.parent

    if not handlers:
        handlers.extend(logging.root.handlers)

    for handler in handlers:
        handler_id = id(handler)
        if handler_id in seen:
            continue
        seen.add(handler_id)
        with contextlib.suppress(Exception):
            handler.flush()


def setup_logging(config: LogConfig | None = None) -> logging.Logger:
    """Setup logging to stderr and, optionally, a rotating log file.

    Args:
        config: Logging configuration; defaults to `LogConfig()`

    Returns:
        The ``hurtlocker`` package logger

    Level priority: 1) ``config.level`` when not None, 2) LOG_LEVEL env var, 3) INFO.
    Output goes to stderr so that wrapped commands keep their stdout.
    """
    config = config or LogConfig()

    log_level = config.level or os.environ.get("LOG_LEVEL", "INFO")
    if log_level.upper() not in _VALID_LEVELS:
        print(f"Warning: Invalid log level '{log_level}', using INFO", file=sys.stderr)
        log_level = "INFO"
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Clear any existing handlers from root logger
    for handler in logging.root.handlers[:]:
        handler.close()
        logging.root.removeHandler(handler)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file is not None:
        try:
            config.log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    config.log_file, maxBytes=config.file_max_bytes, backupCount=config.file_backup_count
                )
            )
        except OSError as e:
            print(f"Warning: Cannot open log file {config.log_file}: {e}. Logging to console only.", file=sys.stderr)

    if config.log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(numeric_level)
        logging.root.addHandler(handler)

    logging.root.setLevel(numeric_level)

    logger = logging.getLogger("hurtlocker")
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    logger.debug("Logging initialized at %s", log_level.upper())
    return logger
