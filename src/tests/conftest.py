"""Pytest configuration and shared fixtures."""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import storage
from models import ProbeResult


@pytest.fixture
def data_dir(tmp_path):
    """Provide a data directory with empty history and stats files."""
    path = str(tmp_path / "data")
    storage.init_storage(path)
    return path


@pytest.fixture
def history_path(data_dir):
    return os.path.join(data_dir, storage.HISTORY_FILENAME)


@pytest.fixture
def stats_path(data_dir):
    return os.path.join(data_dir, storage.STATS_FILENAME)


class FakeClock:
    """Wall clock that advances one second per call."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        value = self.now
        self.now = self.now + self.step
        return value


class FakeProbeClient:
    """ProbeClient returning scripted outcomes.

    Each outcome is either a player count (success) or an exception
    instance (raised). The last outcome repeats once the script runs out.
    """

    def __init__(self, outcomes, players_max=20):
        self.outcomes = list(outcomes)
        self.players_max = players_max
        self.calls = []

    def query(self, host, port, timeout_ms=5000):
        self.calls.append((host, port, timeout_ms))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return ProbeResult(
            host=host,
            port=port,
            players_online=outcome,
            players_max=self.players_max,
        )

