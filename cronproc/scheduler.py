from __future__ import annotations
import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from cronproc.service import CronService

logger = logging.getLogger(__name__)

TICK_JOB_ID = "cron_tick"


class TickScheduler:
    """In-process replacement for the crontab line ``* * * * * python -m cronproc daemon``."""

    def __init__(self, service: CronService, timezone: str | None = None) -> None:
        self.service = service
        self.sched = BackgroundScheduler(timezone=timezone or None)
        self._started = False
        self._stop = threading.Event()

    def start(self) -> None:
        if self._started:
            return
        self.sched.add_job(
            self._fire,
            CronTrigger(minute="*", timezone=self.sched.timezone),
            id=TICK_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.sched.start()
        self._started = True
        logger.info("tick scheduler started")

    def shutdown(self) -> None:
        if not self._started:
            return
        self.sched.shutdown(wait=False)
        self._started = False
        logger.info("tick scheduler stopped")

    def _fire(self) -> None:
        try:
            spawned = self.service.tick()
        except Exception:
            logger.exception("tick failed")
            return
        if spawned:
            logger.info("tick spawned %d task(s)", len(spawned))

    def stop(self, *_args) -> None:
        self._stop.set()

    def run_forever(self) -> None:
        previous = {sig: signal.signal(sig, self.stop) for sig in (signal.SIGTERM, signal.SIGINT)}
        self.start()
        try:
            self._stop.wait()
        finally:
            self.shutdown()
            for sig, handler in previous.items():
                signal.signal(sig, handler)
