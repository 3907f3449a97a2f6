from __future__ import annotations
import contextlib
import logging
import os
import signal
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator, Sequence

from cronproc.errors import (
    InvalidExecutionContext,
    InvalidProcessRecord,
    InvalidTaskDefinition,
    MissingProcessRecord,
)
from cronproc.executor import pid_alive, spawn_detached
from cronproc.process import ProcessState, ProcessStore
from cronproc.schemas import ProcessStatus
from cronproc.task import Task
from cronproc.utils import flush_logs, now_local

logger = logging.getLogger(__name__)

# signals turned into SystemExit while a task body runs, so the finalizer still records the stop
TRAPPED_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


class Decision(str, Enum):
    SKIP = "skip"
    PROCEED = "proceed"


def _raise_exit(signum, _frame):
    raise SystemExit(128 + signum)


class LifecycleTracker:
    """
    Owns the NEW -> RUNNING -> FINISHED | FAILED transitions of task process records.

    Two processes drive the same record: the tick that decides to spawn
    (``load_or_init`` + ``spawn_wrapper``) and the spawned wrapper that runs the
    task (``load_by_id`` + ``execution``). They coordinate only through the
    record file and the OS process table. A tick that reads the record between
    another tick's read and the wrapper's RUNNING write can spawn a second
    instance of a unique task; with one tick per minute that window is accepted.
    """

    def __init__(
        self,
        store: ProcessStore,
        *,
        wrapper_command: Sequence[str] = (),
        is_alive: Callable[[int], bool] = pid_alive,
        spawn: Callable[[Sequence[str], str | None], int] = spawn_detached,
        clock: Callable[[], datetime] = now_local,
        getpid: Callable[[], int] = os.getpid,
        hash_func: str = "sha1",
    ) -> None:
        self.store = store
        self.wrapper_command = list(wrapper_command)
        self.hash_func = hash_func
        self._is_alive = is_alive
        self._spawn = spawn
        self._clock = clock
        self._getpid = getpid
        # states begun by this process and not finalized yet
        self._active: dict[str, ProcessState] = {}

    # ---- loading ----

    def load_or_init(self, task: Task) -> ProcessState:
        state = self.store.load(task.identity())
        if state is None:
            return ProcessState(task_id=task.identity(), task=task.descriptor())
        state.task = task.descriptor()
        self._check_liveness(state, task.display_name())
        return state

    def load_by_id(self, task_id: str) -> tuple[Task, ProcessState]:
        state = self.store.load(task_id)
        if state is None:
            raise MissingProcessRecord(task_id)
        if state.task is None:
            raise InvalidProcessRecord(f"Process record {task_id} has no task definition")
        try:
            task = Task.from_descriptor(state.task, hash_func=self.hash_func)
        except InvalidTaskDefinition as e:
            raise InvalidProcessRecord(f"Process record {task_id} holds an invalid task definition: {e}") from e
        if task.identity() != task_id:
            raise InvalidProcessRecord(f"Process record {task_id} describes task {task.identity()}")
        self._check_liveness(state, task.display_name())
        return task, state

    def _check_liveness(self, state: ProcessState, name: str) -> None:
        if not state.is_running:
            return
        if state.pid is not None and self._is_alive(state.pid):
            return
        state.status = ProcessStatus.FAILED
        state.pid = None
        self.store.save(state)
        logger.error("Task '%s' unexpectedly finished. Check logs and console command", name)

    # ---- execution side ----

    def begin_execution(self, task: Task, state: ProcessState) -> Decision:
        if task.is_unique and state.is_running:
            return Decision.SKIP

        state.status = ProcessStatus.RUNNING
        state.pid = self._getpid()
        state.last_start = self._clock()
        state.task = task.descriptor()
        self.store.save(state)
        self._active[state.task_id] = state
        logger.info("Task '%s' started (PID: %s)", task.display_name(), state.pid)
        return Decision.PROCEED

    def _require_active(self, state: ProcessState, op: str) -> None:
        if self._active.get(state.task_id) is not state:
            raise InvalidExecutionContext(
                f"{op} is only allowed inside the task execution entry point (task {state.task_id})"
            )

    def complete_execution(self, state: ProcessState) -> None:
        self._require_active(state, "complete_execution")
        state.status = ProcessStatus.FINISHED
        self.store.save(state)
        logger.info("Task '%s' successfully finished", self._name_of(state))

    def finalize_on_exit(self, state: ProcessState) -> None:
        self._require_active(state, "finalize_on_exit")
        del self._active[state.task_id]

        state.pid = None
        state.last_stop = self._clock()
        failed = state.is_running
        if failed:
            # complete_execution never ran
            state.status = ProcessStatus.FAILED
        self.store.save(state)

        if failed:
            logger.error("Task '%s' unexpectedly finished. Check logs and console command", self._name_of(state))
            flush_logs()

    @contextlib.contextmanager
    def execution(self, task: Task, state: ProcessState, trap_signals: bool = False) -> Iterator[Decision]:
        """
        Scope of one task run. Yields SKIP without touching the record when a
        unique task is still running; otherwise marks it RUNNING and guarantees
        ``finalize_on_exit`` on every way out of the block.
        """
        if self.begin_execution(task, state) is Decision.SKIP:
            yield Decision.SKIP
            return

        previous = {}
        if trap_signals and threading.current_thread() is threading.main_thread():
            for sig in TRAPPED_SIGNALS:
                previous[sig] = signal.signal(sig, _raise_exit)
        try:
            yield Decision.PROCEED
        finally:
            # ignored while the final record is written
            for sig in previous:
                signal.signal(sig, signal.SIG_IGN)
            try:
                self.finalize_on_exit(state)
            finally:
                for sig, handler in previous.items():
                    signal.signal(sig, handler)

    # ---- spawning side ----

    def wrapper_argv(self, task: Task) -> list[str]:
        return [
            *self.wrapper_command,
            "run",
            "--id",
            task.identity(),
            "--runtime-dir",
            str(self.store.runtime_dir),
        ]

    def spawn_wrapper(self, task: Task, state: ProcessState | None = None) -> int:
        """
        Persist the task definition and start the wrapper without waiting.
        The wrapper records its own pid once it begins.
        """
        if state is None:
            state = self.load_or_init(task)
        state.task = task.descriptor()
        self.store.save(state)

        pid = self._spawn(self.wrapper_argv(task), task.output_file)
        logger.info("Task '%s' wrapper spawned (PID: %s)", task.display_name(), pid)
        return pid

    @staticmethod
    def _name_of(state: ProcessState) -> str:
        if state.task is not None and state.task.name:
            return state.task.name
        return state.task_id
