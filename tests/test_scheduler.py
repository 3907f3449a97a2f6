# tests/test_scheduler.py

from __future__ import annotations

import logging

from cronproc.scheduler import TICK_JOB_ID, TickScheduler


class StubService:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result or []
        self.error = error
        self.ticks = 0

    def tick(self):
        self.ticks += 1
        if self.error is not None:
            raise self.error
        return self.result


def test_start_registers_minute_tick() -> None:
    ts = TickScheduler(StubService(), timezone="UTC")
    ts.start()
    try:
        job = ts.sched.get_job(TICK_JOB_ID)
        assert job is not None
        assert job.max_instances == 1
        assert job.coalesce is True
        assert "minute='*'" in str(job.trigger)
        ts.start()  # idempotent
        assert len(ts.sched.get_jobs()) == 1
    finally:
        ts.shutdown()
    assert not ts.sched.running


def test_fire_runs_one_tick() -> None:
    service = StubService(result=["abc"])
    TickScheduler(service)._fire()
    assert service.ticks == 1


def test_failing_tick_is_logged(caplog) -> None:
    ts = TickScheduler(StubService(error=RuntimeError("registry broke")))
    with caplog.at_level(logging.ERROR):
        ts._fire()
    assert "tick failed" in caplog.text
    assert "registry broke" in caplog.text


def test_run_forever_returns_after_stop() -> None:
    ts = TickScheduler(StubService())
    ts.stop()
    ts.run_forever()
    assert not ts.sched.running
