from __future__ import annotations
import importlib
import logging
from typing import Callable, Iterable

from cronproc.errors import RegistryError
from cronproc.task import Task

logger = logging.getLogger(__name__)

TaskLoader = Callable[[], Iterable[Task]]


def resolve_callback(path: str) -> TaskLoader:
    """Import ``package.module:callable`` (``module.callable`` also accepted)."""
    if not path or not path.strip():
        raise RegistryError("You should specify callback with tasks definitions (TASKS_CALLBACK).")
    path = path.strip()
    if ":" in path:
        module_name, _, attr = path.partition(":")
    else:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise RegistryError(f"Callback must look like 'package.module:callable', got {path!r}")

    try:
        obj = importlib.import_module(module_name)
    except ImportError as e:
        raise RegistryError(f"Cannot import tasks module {module_name!r}: {e}") from e
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise RegistryError(f"{module_name!r} has no attribute {attr!r}") from None

    # a class is instantiated and its get_tasks() used
    if isinstance(obj, type):
        obj = getattr(obj(), "get_tasks", None)
    if not callable(obj):
        raise RegistryError(f"Tasks callback {path!r} is not callable")
    return obj


class TaskRegistry:
    def __init__(self, loader: TaskLoader) -> None:
        self._loader = loader
        self._active: dict[str, Task] = {}

    @classmethod
    def from_callback(cls, path: str) -> TaskRegistry:
        # resolved on every load so the wrapper can run without a registry
        return cls(lambda: resolve_callback(path)())

    def load_tasks(self) -> list[Task]:
        tasks = self._loader()
        if tasks is None or isinstance(tasks, (str, bytes)) or not isinstance(tasks, Iterable):
            raise RegistryError("Callback must return a list of Task instances")

        active: dict[str, Task] = {}
        for task in tasks:
            if not isinstance(task, Task):
                raise RegistryError(f"One of the callback results is not a Task instance: {task!r}")
            if task.identity() in active:
                logger.warning("Task '%s' defined twice; the last definition wins", task.display_name())
            active[task.identity()] = task

        self._active = active
        return list(active.values())

    def get(self, task_id: str) -> Task | None:
        return self._active.get(task_id)
