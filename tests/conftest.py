# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from cronproc.lifecycle import LifecycleTracker
from cronproc.process import ProcessStore

from .fakes import FakeProcessTable, FixedClock, RecordingRunner, RecordingSpawner

OWN_PID = 1111


@pytest.fixture()
def runtime_dir(tmp_path: Path) -> Path:
    return tmp_path / "cron"


@pytest.fixture()
def store(runtime_dir: Path) -> ProcessStore:
    return ProcessStore(runtime_dir)


@pytest.fixture()
def process_table() -> FakeProcessTable:
    return FakeProcessTable()


@pytest.fixture()
def spawner() -> RecordingSpawner:
    return RecordingSpawner()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 1, 8, 10, 0, 0))


@pytest.fixture()
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture()
def tracker(store, process_table, spawner, clock) -> LifecycleTracker:
    """
    Tracker wired to fakes: no real process is spawned or polled, and the
    "current process" always has pid OWN_PID.
    """
    return LifecycleTracker(
        store,
        wrapper_command=["python", "-m", "cronproc"],
        is_alive=process_table,
        spawn=spawner,
        clock=clock,
        getpid=lambda: OWN_PID,
    )
