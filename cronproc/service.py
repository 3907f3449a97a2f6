from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable

from cronproc.errors import CronError, InvalidProcessRecord, MissingProcessRecord
from cronproc.executor import CommandRunner
from cronproc.lifecycle import Decision, LifecycleTracker
from cronproc.process import ProcessState
from cronproc.registry import TaskRegistry
from cronproc.schemas import TaskStatusOut
from cronproc.task import Task
from cronproc.utils import format_ts, now_local

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NO_RECORD = 2

# status shown for a task whose record cannot be decoded
INVALID_RECORD = "INVALID"


class CronService:
    """
    Front door used by the console and the HTTP status API.

    - tick(): run once a minute; spawns a wrapper for every task due now
    - run_task(): body of the wrapper process for one task identity
    - status(): current state of every registered task
    """

    def __init__(
        self,
        registry: TaskRegistry,
        tracker: LifecycleTracker,
        runner: CommandRunner,
        *,
        enabled: bool = True,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self.registry = registry
        self.tracker = tracker
        self.runner = runner
        self.enabled = enabled
        self._clock = clock

    def tick(self, now: datetime | None = None) -> list[str]:
        if not self.enabled:
            logger.warning("Cron command processor is disabled")
            return []

        now = now or self._clock()
        spawned: list[str] = []
        for task in self.registry.load_tasks():
            if not task.can_run(now):
                continue
            # a broken record or failed spawn skips only this task
            try:
                if self._spawn_due(task):
                    spawned.append(task.identity())
            except (CronError, OSError):
                logger.exception("Cannot run task '%s'", task.display_name())
        return spawned

    def _spawn_due(self, task: Task) -> bool:
        state = self.tracker.load_or_init(task)
        if task.is_unique and state.is_running:
            logger.warning(
                "Cannot run task '%s': it is still running and does not allow overlapping (is unique)",
                task.display_name(),
            )
            return False
        self.tracker.spawn_wrapper(task, state)
        return True

    def run_task(self, task_id: str, trap_signals: bool = False) -> int:
        if not self.enabled:
            logger.warning("Cron command processor is disabled")
            return EXIT_OK

        try:
            task, state = self.tracker.load_by_id(task_id)
        except MissingProcessRecord as e:
            logger.error("%s", e)
            return EXIT_NO_RECORD
        except CronError as e:
            logger.error("Cannot run task %s: %s", task_id, e)
            return EXIT_FAILED

        try:
            with self.tracker.execution(task, state, trap_signals=trap_signals) as decision:
                if decision is Decision.SKIP:
                    logger.warning(
                        "Cannot run task '%s': it is still running and does not allow overlapping (unique)",
                        task.display_name(),
                    )
                    return EXIT_OK
                self.runner.run(task.command, task.action, task.params)
                self.tracker.complete_execution(state)
        except Exception:
            # already recorded FAILED by the finalizer
            logger.exception("Task '%s' raised an error", task.display_name())
            return EXIT_FAILED
        return EXIT_OK

    def describe(self, task: Task) -> TaskStatusOut:
        try:
            state = self.tracker.load_or_init(task)
        except InvalidProcessRecord as e:
            logger.error("Cannot read process record of task '%s': %s", task.display_name(), e)
            state = ProcessState(task_id=task.identity())
            status, label = INVALID_RECORD, f"{INVALID_RECORD} (unreadable process record)"
        else:
            status, label = state.status.name, state.status.label(state.pid)

        return TaskStatusOut(
            id=task.identity(),
            name=task.display_name(),
            schedule=task.get_schedule(),
            command_line=task.command_line(),
            unique=task.is_unique,
            output_file=task.output_file,
            status=status,
            status_label=label,
            pid=state.pid,
            last_start=format_ts(state.last_start),
            last_stop=format_ts(state.last_stop),
        )

    def status(self) -> list[TaskStatusOut]:
        return [self.describe(t) for t in self.registry.load_tasks()]

    def status_of(self, task_id: str) -> TaskStatusOut | None:
        self.registry.load_tasks()
        task = self.registry.get(task_id)
        return self.describe(task) if task is not None else None
