from __future__ import annotations
import hashlib
import json
import os
import re
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, Mapping

from cronproc.errors import InvalidTaskDefinition
from cronproc.schedule import (
    DEFAULT_CRON,
    FIELD_ORDER,
    PRESETS,
    ScheduleField,
    ScheduleSpec,
    parse_cron,
    parse_field,
    split_cron,
)
from cronproc.schemas import TaskDescriptor

if TYPE_CHECKING:
    from cronproc.lifecycle import LifecycleTracker
    from cronproc.process import ProcessState

_COMMAND_RE = re.compile(r"^[a-z0-9]+$", re.IGNORECASE)
_PARAM_RE = re.compile(r"^[a-z]+\w+$", re.IGNORECASE)


def task_identity(command: str, action: str | None, params: Mapping[str, Any], hash_func: str = "sha1") -> str:
    payload = json.dumps([command, action, dict(params)], separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    try:
        h = hashlib.new(hash_func)
        h.update(payload.encode("utf-8"))
        return h.hexdigest()
    except (ValueError, TypeError) as e:
        raise InvalidTaskDefinition(
            f"Hash function '{hash_func}' is not usable for task identity: {e}. Use another one: md5, sha1, sha256"
        ) from None


class Task:
    """
    One scheduled console task.

    The schedule defaults to ``* * * * *`` (every minute). Configuration calls
    return the task itself so they can be chained::

        Task("import", "products", {"updateAll": 1}).named("Import products").daily().hour(18)

    Configuration is only allowed until the task is first evaluated or its
    process state is loaded.
    """

    def __init__(
        self,
        command: str,
        action: str | None = None,
        params: Mapping[str, Any] | None = None,
        *,
        hash_func: str = "sha1",
    ) -> None:
        # set before validation; __repr__ relies on them
        self._id = ""
        self._name: str | None = None
        self._unique = False
        self._output_file: str | None = None
        self._raw: dict[ScheduleField, str] = dict(zip(FIELD_ORDER, split_cron(DEFAULT_CRON)))
        self._schedule: ScheduleSpec = parse_cron(DEFAULT_CRON)
        self._process: ProcessState | None = None
        self._in_use = False

        if not command:
            raise InvalidTaskDefinition(
                "Command cannot be empty. You should specify name of the application console command"
            )
        if not isinstance(command, str) or not _COMMAND_RE.match(command):
            raise InvalidTaskDefinition("Specified command value is not valid. Valid examples: myConsole, import")
        if action and (not isinstance(action, str) or not _COMMAND_RE.match(action)):
            raise InvalidTaskDefinition("Specified action value is not valid. Valid examples: run, index, start")

        cleared: dict[str, Any] = {}
        for key, value in (params or {}).items():
            if not isinstance(key, str) or not _PARAM_RE.match(key):
                raise InvalidTaskDefinition(
                    f"Bad param name: '{key}'. It must contain alphanumeric values and/or underscore."
                )
            if not isinstance(value, (str, int, float, bool)):
                raise InvalidTaskDefinition(f"Bad value for param '{key}': {value!r}")
            cleared[key] = value

        self._command = command
        self._action = action or None
        self._params = cleared
        self._hash_func = hash_func
        self._id = task_identity(command, self._action, cleared, hash_func)

    @classmethod
    def from_descriptor(cls, desc: TaskDescriptor, hash_func: str = "sha1") -> Task:
        task = cls(desc.command, desc.action, desc.params, hash_func=hash_func)
        if desc.name:
            task.named(desc.name)
        if desc.unique:
            task.unique()
        # the output path was validated when the task was registered
        task._output_file = desc.output_file
        return task

    def __repr__(self) -> str:
        return f"<Task {self.display_name()!r} {self.get_schedule()!r}>"

    # ---- identity / descriptor ----

    @property
    def command(self) -> str:
        return self._command

    @property
    def action(self) -> str | None:
        return self._action

    @property
    def params(self) -> dict[str, Any]:
        return dict(self._params)

    @property
    def is_unique(self) -> bool:
        return self._unique

    @property
    def output_file(self) -> str | None:
        return self._output_file

    @property
    def schedule(self) -> ScheduleSpec:
        return self._schedule

    def identity(self) -> str:
        return self._id

    @property
    def id(self) -> str:
        return self._id

    def display_name(self) -> str:
        return self._name or self._id

    def cli_args(self) -> list[str]:
        return [f"--{k}={v}" for k, v in self._params.items()]

    def command_line(self) -> str:
        parts = [self._command]
        if self._action:
            parts.append(self._action)
        parts.extend(self.cli_args())
        return " ".join(parts)

    def descriptor(self) -> TaskDescriptor:
        return TaskDescriptor(
            name=self._name,
            command=self._command,
            action=self._action,
            params=self._params,
            unique=self._unique,
            output_file=self._output_file,
        )

    # ---- configuration ----

    def _check_mutable(self) -> None:
        if self._in_use:
            raise InvalidTaskDefinition(f"Task '{self.display_name()}' is already in use and cannot be reconfigured")

    def named(self, value: str) -> Task:
        self._check_mutable()
        self._name = str(value).strip() or None
        return self

    def unique(self) -> Task:
        """Refuse to start a new instance while a previous one is still running."""
        self._check_mutable()
        self._unique = True
        return self

    def set_output_file(self, path: str | os.PathLike) -> Task:
        self._check_mutable()
        path = os.fspath(path)
        if os.path.isdir(path):
            raise InvalidTaskDefinition("Wrong output path - this is the directory!")
        dir_name = os.path.dirname(os.path.abspath(path))
        if not os.path.isdir(dir_name):
            raise InvalidTaskDefinition("Wrong output path - target directory for output file does not exist!")
        if not os.access(dir_name, os.W_OK):
            raise InvalidTaskDefinition("Wrong output path - target directory for output file is not writable!")
        self._output_file = path
        return self

    def _set_fields(self, values: Mapping[ScheduleField, str]) -> Task:
        self._check_mutable()
        # parse everything first so a bad field leaves the schedule untouched
        parsed = {f.value: parse_field(f, raw) for f, raw in values.items()}
        self._schedule = replace(self._schedule, **parsed)
        self._raw.update({f: str(raw).strip() for f, raw in values.items()})
        return self

    def minute(self, value: str | int) -> Task:
        return self._set_fields({ScheduleField.MINUTE: str(value)})

    def hour(self, value: str | int) -> Task:
        return self._set_fields({ScheduleField.HOUR: str(value)})

    def day(self, value: str | int) -> Task:
        return self._set_fields({ScheduleField.DAY: str(value)})

    def month(self, value: str | int) -> Task:
        return self._set_fields({ScheduleField.MONTH: str(value)})

    def day_of_week(self, value: str | int) -> Task:
        return self._set_fields({ScheduleField.DAY_OF_WEEK: str(value)})

    def cron(self, value: str) -> Task:
        return self._set_fields(dict(zip(FIELD_ORDER, split_cron(value))))

    def hourly(self) -> Task:
        return self.cron(PRESETS["hourly"])

    def daily(self) -> Task:
        return self.cron(PRESETS["daily"])

    def weekly(self) -> Task:
        return self.cron(PRESETS["weekly"])

    def monthly(self) -> Task:
        return self.cron(PRESETS["monthly"])

    def yearly(self) -> Task:
        return self.cron(PRESETS["yearly"])

    # ---- evaluation ----

    def get_schedule(self) -> str:
        return " ".join(self._raw[f] for f in FIELD_ORDER)

    def can_run(self, now: datetime) -> bool:
        self._in_use = True
        return self._schedule.matches(now)

    def get_process_state(self, tracker: LifecycleTracker, refresh: bool = False) -> ProcessState:
        self._in_use = True
        if self._process is None or refresh:
            self._process = tracker.load_or_init(self)
        return self._process
