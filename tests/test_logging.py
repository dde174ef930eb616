"""Tests for logging helpers"""

import json
import logging

import pytest

from hurtlocker.core.config import LogConfig
from hurtlocker.core.logging import (
    ContextLoggerAdapter,
    JSONFormatter,
    flush_logging_handlers,
    setup_logging,
    with_log_context,
)


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def _record(msg="Lock %s granted", args=("job-1",), **extra):
    record = logging.LogRecord("hurtlocker.test", logging.INFO, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "hurtlocker.test"
        assert entry["message"] == "Lock job-1 granted"
        assert "timestamp" in entry

    def test_context_fields_become_top_level_keys(self):
        record = _record(log_context={"lock_name": "job-1", "owner": {"id": "A"}})
        entry = json.loads(JSONFormatter().format(record))

        assert entry["lock_name"] == "job-1"
        assert entry["owner"] == {"id": "A"}

    def test_attributes_outside_log_context_are_skipped(self):
        entry = json.loads(JSONFormatter().format(_record(_internal="x", taskName="t")))

        assert "_internal" not in entry
        assert "taskName" not in entry

    def test_context_does_not_override_standard_fields(self):
        entry = json.loads(JSONFormatter().format(_record(log_context={"level": "BOGUS", "lock_name": "job-1"})))

        assert entry["level"] == "INFO"
        assert entry["lock_name"] == "job-1"

    def test_bad_message_arguments_do_not_raise(self):
        entry = json.loads(JSONFormatter().format(_record(msg="%d ms", args=("soon",))))

        assert "log-message-format-error" in entry["message"]


class TestWithLogContext:
    def test_adds_context_to_records(self, caplog):
        logger = with_log_context(logging.getLogger("hurtlocker.test"), lock_name="job-1")

        with caplog.at_level(logging.INFO, logger="hurtlocker.test"):
            logger.info("acquired")

        assert isinstance(logger, ContextLoggerAdapter)
        assert caplog.records[-1].lock_name == "job-1"
        assert caplog.records[-1].log_context == {"lock_name": "job-1"}

    def test_nested_context_is_merged_and_none_dropped(self):
        outer = with_log_context(logging.getLogger("hurtlocker.test"), lock_name="job-1")
        inner = with_log_context(outer, owner="a", pid=None)

        assert inner.extra == {"lock_name": "job-1", "owner": "a"}
        assert inner.logger is logging.getLogger("hurtlocker.test")

    def test_non_logger_is_returned_unchanged(self):
        sentinel = object()

        assert with_log_context(sentinel, lock_name="job-1") is sentinel


class TestSetupLogging:
    def test_returns_package_logger(self):
        logger = setup_logging(LogConfig(level="WARNING"))

        assert logger.name == "hurtlocker"
        assert logging.getLogger().level == logging.WARNING

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        setup_logging()

        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_level_falls_back_to_info(self, capsys):
        setup_logging(LogConfig(level="LOUD"))

        assert logging.getLogger().level == logging.INFO
        assert "Invalid log level" in capsys.readouterr().err

    def test_json_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "hurtlocker.log"
        logger = setup_logging(LogConfig(level="INFO", log_format="json", log_file=log_file))

        with_log_context(logger, lock_name="job-1").info("Lock %s granted", "job-1")
        flush_logging_handlers(logger)

        lines = log_file.read_text(encoding="utf-8").splitlines()
        entry = json.loads(lines[-1])
        assert entry["message"] == "Lock job-1 granted"
        assert entry["lock_name"] == "job-1"
