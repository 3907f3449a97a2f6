# tests/test_registry.py

from __future__ import annotations

import logging

import pytest

from cronproc.errors import RegistryError
from cronproc.registry import TaskRegistry, resolve_callback
from cronproc.task import Task


class TaskBook:
    def get_tasks(self):
        return [Task("mail"), Task("report").daily()]


def test_sample_callback_loads() -> None:
    registry = TaskRegistry.from_callback("cronproc.sample_tasks:get_tasks")
    tasks = registry.load_tasks()
    assert len(tasks) == 4
    assert {t.command for t in tasks} == {"mail", "import", "report", "cleanup"}
    assert registry.get(tasks[0].identity()) is tasks[0]


def test_dotted_path_is_accepted() -> None:
    assert len(TaskRegistry.from_callback("cronproc.sample_tasks.get_tasks").load_tasks()) == 4


def test_class_callback_is_instantiated() -> None:
    loader = resolve_callback(f"{__name__}:TaskBook")
    assert [t.command for t in loader()] == ["mail", "report"]


@pytest.mark.parametrize(
    "path",
    ["", "   ", "no_colon_or_dot", "cronproc.no_such_module:get_tasks", "cronproc.sample_tasks:missing", "os:sep"],
)
def test_bad_callback_fails_on_load(path: str) -> None:
    registry = TaskRegistry.from_callback(path)  # resolution is deferred
    with pytest.raises(RegistryError):
        registry.load_tasks()


@pytest.mark.parametrize("result", [None, "mail", 42, [Task("mail"), "report"]])
def test_callback_must_return_tasks(result) -> None:
    with pytest.raises(RegistryError):
        TaskRegistry(lambda: result).load_tasks()


def test_duplicate_definitions_collapse(caplog) -> None:
    first = Task("mail", "send").named("First")
    second = Task("mail", "send").named("Second").daily()
    registry = TaskRegistry(lambda: [first, second])

    with caplog.at_level(logging.WARNING):
        tasks = registry.load_tasks()

    assert tasks == [second]
    assert "defined twice" in caplog.text


def test_callback_is_called_on_every_load() -> None:
    calls = []

    def loader():
        calls.append(1)
        return [Task("mail")]

    registry = TaskRegistry(loader)
    first = registry.load_tasks()
    second = registry.load_tasks()
    assert len(calls) == 2
    assert first[0] is not second[0]
