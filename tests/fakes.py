# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping, Sequence


class FakeProcessTable:
    """Liveness query answering from a fixed set of pids."""

    def __init__(self, alive: Sequence[int] = ()) -> None:
        self.alive = set(alive)
        self.queries: list[int] = []

    def __call__(self, pid: int) -> bool:
        self.queries.append(pid)
        return pid in self.alive


@dataclass(slots=True)
class SpawnCall:
    argv: list[str]
    output_file: str | None


@dataclass(slots=True)
class RecordingSpawner:
    """Detached-spawn primitive that only records what it was asked to start."""

    pid: int = 4242
    calls: list[SpawnCall] = field(default_factory=list)

    def __call__(self, argv: Sequence[str], output_file: str | None) -> int:
        self.calls.append(SpawnCall(argv=list(argv), output_file=output_file))
        return self.pid


@dataclass(slots=True)
class RecordingRunner:
    fail: Exception | None = None
    calls: list[tuple[str, str | None, dict[str, Any]]] = field(default_factory=list)

    def run(self, command: str, action: str | None, params: Mapping[str, Any]) -> None:
        self.calls.append((command, action, dict(params)))
        if self.fail is not None:
            raise self.fail


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)
