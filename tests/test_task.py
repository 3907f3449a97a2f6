# tests/test_task.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from cronproc.errors import InvalidSchedule, InvalidTaskDefinition
from cronproc.schemas import ProcessStatus
from cronproc.task import Task, task_identity


def test_identity_is_deterministic() -> None:
    a = Task("import", "products", {"updateAll": 1, "limit": 10})
    b = Task("import", "products", {"limit": 10, "updateAll": 1})
    assert a.identity() == b.identity()
    assert len(a.identity()) == 40  # sha1 hex


def test_identity_changes_with_any_part() -> None:
    base = Task("import", "products", {"updateAll": 1}).identity()
    assert Task("import", "products", {"updateAll": 2}).identity() != base
    assert Task("import", "orders", {"updateAll": 1}).identity() != base
    assert Task("export", "products", {"updateAll": 1}).identity() != base
    assert Task("import", "products").identity() != base


def test_identity_ignores_schedule_and_name() -> None:
    a = Task("mail", "send")
    b = Task("mail", "send").named("Mailer").daily().unique()
    assert a.identity() == b.identity()


def test_identity_hash_function() -> None:
    assert len(Task("mail", hash_func="md5").identity()) == 32
    assert Task("mail", hash_func="md5").identity() == task_identity("mail", None, {}, "md5")
    with pytest.raises(InvalidTaskDefinition):
        Task("mail", hash_func="no-such-hash")


@pytest.mark.parametrize(
    ("command", "action", "params"),
    [
        ("", None, None),
        ("bad-name", None, None),
        ("my console", None, None),
        ("import", "run now", None),
        ("import", "run-now", None),
        ("import", None, {"1abc": 1}),
        ("import", None, {"bad-key": 1}),
        ("import", None, {"ok_key": [1, 2]}),
    ],
)
def test_invalid_definitions(command, action, params) -> None:
    with pytest.raises(InvalidTaskDefinition):
        Task(command, action, params)


def test_display_name_defaults_to_identity() -> None:
    task = Task("import")
    assert task.display_name() == task.identity()
    task.named("  Import everything  ")
    assert task.display_name() == "Import everything"


def test_default_schedule_is_every_minute() -> None:
    task = Task("import")
    assert task.get_schedule() == "* * * * *"
    assert task.can_run(datetime(2024, 5, 17, 3, 41))


def test_fluent_configuration() -> None:
    task = Task("import", "products", {"updateAll": 1}).named("Import products").daily().hour(18).unique()
    assert task.get_schedule() == "0 18 * * *"
    assert task.is_unique
    assert task.can_run(datetime(2024, 1, 1, 18, 0))
    assert not task.can_run(datetime(2024, 1, 1, 18, 1))
    assert not task.can_run(datetime(2024, 1, 1, 0, 0))


@pytest.mark.parametrize(
    ("preset", "expected"),
    [
        ("hourly", "0 * * * *"),
        ("daily", "0 0 * * *"),
        ("weekly", "0 0 * * 0"),
        ("monthly", "0 0 1 * *"),
        ("yearly", "0 0 1 1 *"),
    ],
)
def test_presets_go_through_cron(preset: str, expected: str) -> None:
    task = getattr(Task("report"), preset)()
    assert task.get_schedule() == expected


def test_field_setters_keep_raw_text() -> None:
    task = Task("mail").minute("9/2").hour("8-18").day("1-10,15/2").month(3).day_of_week("1-5")
    assert task.get_schedule() == "9/2 8-18 1-10,15/2 3 1-5"
    assert task.schedule.minute == set(range(9, 60, 2))


def test_bad_value_leaves_schedule_untouched() -> None:
    task = Task("mail").minute("5")
    with pytest.raises(InvalidSchedule):
        task.cron("1 2 3 4 9")
    with pytest.raises(InvalidSchedule):
        task.hour("25")
    assert task.get_schedule() == "5 * * * *"


def test_configuration_is_frozen_once_in_use() -> None:
    task = Task("mail")
    task.can_run(datetime(2024, 1, 1))
    with pytest.raises(InvalidTaskDefinition):
        task.hourly()


def test_output_file_validation(tmp_path: Path) -> None:
    task = Task("mail")
    with pytest.raises(InvalidTaskDefinition):
        task.set_output_file(tmp_path)
    with pytest.raises(InvalidTaskDefinition):
        task.set_output_file(tmp_path / "missing" / "out.txt")

    target = tmp_path / "out.txt"
    task.set_output_file(target)
    assert task.output_file == str(target)


def test_command_line() -> None:
    task = Task("import", "products", {"updateAll": 1, "since": "2024-01-01"})
    assert task.command_line() == "import products --updateAll=1 --since=2024-01-01"
    assert Task("report").command_line() == "report"


def test_descriptor_rebuilds_the_same_task(tmp_path: Path) -> None:
    task = (
        Task("import", "products", {"updateAll": 1})
        .named("Import")
        .unique()
        .set_output_file(tmp_path / "import.txt")
    )
    clone = Task.from_descriptor(task.descriptor())
    assert clone.identity() == task.identity()
    assert clone.display_name() == "Import"
    assert clone.is_unique
    assert clone.output_file == task.output_file
    assert clone.params == {"updateAll": 1}


def test_process_state_is_lazy_and_cached(tracker) -> None:
    task = Task("mail")
    state = task.get_process_state(tracker)
    assert state.status is ProcessStatus.NEW
    assert task.get_process_state(tracker) is state
    assert not tracker.store.exists(task.identity())


def test_rejected_task_still_has_a_repr() -> None:
    task = Task.__new__(Task)
    with pytest.raises(InvalidTaskDefinition):
        task.__init__("bad-cmd")
    assert repr(task) == "<Task '' '* * * * *'>"
