"""Pytest configuration and fixtures for hurtlocker tests"""

import os

import pytest

from hurtlocker.core.locks import LockCoordinator


class FakeLiveness:
    """Liveness oracle test double: only pids in ``alive_pids`` are running."""

    name = "fake"

    def __init__(self, alive_pids=(), error=None):
        self.alive_pids = set(alive_pids)
        self.error = error
        self.calls = []

    def is_alive(self, pid):
        self.calls.append(pid)
        if self.error is not None:
            raise self.error
        return pid in self.alive_pids


@pytest.fixture
def lock_dir(tmp_path):
    """Lock directory that does not exist yet"""
    return tmp_path / "locks"


@pytest.fixture
def liveness():
    """Fake oracle that only considers the test process alive"""
    return FakeLiveness({os.getpid()})


@pytest.fixture
def make_coordinator(lock_dir, liveness):
    """Factory for coordinators sharing one lock directory and oracle"""

    def _make(**settings):
        oracle = settings.pop("liveness", liveness)
        merged = {"lock_dir": lock_dir, "retry_interval_ms": 10}
        merged.update(settings)
        return LockCoordinator(merged, liveness=oracle)

    return _make
