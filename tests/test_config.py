"""Tests for lock settings resolution."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from hurtlocker.core.config import LockConfig, create_default_config, load_settings
from hurtlocker.core.constants import DEFAULT_EMPTY_LOCK_GRACE_MS
from hurtlocker.core.exceptions import ConfigurationError


class TestLockConfigFromSettings:
    def test_defaults(self):
        config = LockConfig.from_settings()

        assert config.lock_dir == Path("locks")
        assert config.lock_file_suffix == ".lock"
        assert config.retry_interval_ms == 100
        assert config.empty_lock_grace_ms == DEFAULT_EMPTY_LOCK_GRACE_MS
        assert config.liveness_check == "auto"
        assert config.process_name is None
        assert config.extra == {}

    def test_overrides_are_applied_and_unknown_keys_kept(self, tmp_path):
        config = LockConfig.from_settings(
            {"lock_dir": str(tmp_path / "x"), "retry_interval_ms": 50, "wibble": "wobble"}
        )

        assert config.lock_dir == tmp_path / "x"
        assert config.retry_interval_ms == 50
        assert config.lock_file_suffix == ".lock"
        assert config.extra == {"wibble": "wobble"}

    def test_callable_settings(self):
        config = LockConfig.from_settings(lambda: {"lock_file_suffix": ".lck"})

        assert config.lock_file_suffix == ".lck"

    def test_callable_returning_none_gives_defaults(self):
        assert LockConfig.from_settings(lambda: None) == LockConfig()

    def test_camel_case_keys_are_accepted(self):
        config = LockConfig.from_settings(
            {"lockDir": "/tmp/locks", "lockFileSuffix": ".pid", "lockRetryTimeMillis": 25, "processName": "node"}
        )

        assert config.lock_dir == Path("/tmp/locks")
        assert config.lock_file_suffix == ".pid"
        assert config.retry_interval_ms == 25
        assert config.process_name == "node"

    def test_supplied_mapping_is_not_mutated(self):
        settings = {"retry_interval_ms": "20", "wibble": 1}
        snapshot = dict(settings)

        config = LockConfig.from_settings(settings)

        assert settings == snapshot
        assert config.retry_interval_ms == 20

    def test_existing_config_is_copied(self):
        original = LockConfig(retry_interval_ms=5, extra={"wibble": 1})

        copy = LockConfig.from_settings(original)
        copy.extra["wibble"] = 2

        assert copy is not original
        assert copy.retry_interval_ms == 5
        assert original.extra == {"wibble": 1}

    def test_to_dict_excludes_extra(self):
        data = LockConfig(extra={"wibble": 1}).to_dict()

        assert "extra" not in data
        assert set(data) == set(create_default_config())

    def test_liveness_name_is_normalized(self):
        assert LockConfig(liveness_check=" Signal ").liveness_check == "signal"

    def test_blank_process_name_means_any_process(self):
        assert LockConfig(process_name="   ").process_name is None

    @pytest.mark.parametrize(
        ("settings", "field"),
        [
            ({"retry_interval_ms": -1}, "retry_interval_ms"),
            ({"retry_interval_ms": "soon"}, "retry_interval_ms"),
            ({"retry_interval_ms": True}, "retry_interval_ms"),
            ({"empty_lock_grace_ms": -5}, "empty_lock_grace_ms"),
            ({"lock_file_suffix": ""}, "lock_file_suffix"),
            ({"lock_file_suffix": "/x"}, "lock_file_suffix"),
        ],
    )
    def test_invalid_values_are_rejected(self, settings, field):
        with pytest.raises(ConfigurationError) as exc_info:
            LockConfig.from_settings(settings)

        assert exc_info.value.field == field

    def test_non_mapping_settings_are_rejected(self):
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            LockConfig.from_settings(["lock_dir", "x"])


class TestLoadSettings:
    def test_defaults_without_sources(self):
        assert load_settings(environ={}) == create_default_config()

    def test_config_file_overrides_defaults(self, tmp_path):
        config_file = tmp_path / "locks.json"
        config_file.write_text(json.dumps({"lockDir": "/var/locks", "retry_interval_ms": 250, "team": "ops"}))

        settings = load_settings(config_file, environ={})

        assert settings["lock_dir"] == "/var/locks"
        assert settings["retry_interval_ms"] == 250
        assert settings["team"] == "ops"

    def test_environment_overrides_config_file(self, tmp_path):
        config_file = tmp_path / "locks.json"
        config_file.write_text(json.dumps({"retry_interval_ms": 250, "liveness_check": "auto"}))
        environ = {
            "HURTLOCKER_RETRY_INTERVAL_MS": "75",
            "HURTLOCKER_LIVENESS": "signal",
            "HURTLOCKER_PROCESS_NAME": "  ",
        }

        config = LockConfig.from_settings(load_settings(config_file, environ=environ))

        assert config.retry_interval_ms == 75
        assert config.liveness_check == "signal"
        assert config.process_name is None

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Config file not found") as exc_info:
            load_settings(tmp_path / "absent.json", environ={})

        assert exc_info.value.config_file == str(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        config_file = tmp_path / "locks.json"
        config_file.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_settings(config_file, environ={})

    def test_non_object_json(self, tmp_path):
        config_file = tmp_path / "locks.json"
        config_file.write_text("[1, 2]")

        with pytest.raises(ConfigurationError, match="JSON object"):
            load_settings(config_file, environ={})
