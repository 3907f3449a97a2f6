from __future__ import annotations
import fcntl
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from cronproc.errors import InvalidProcessRecord
from cronproc.schemas import ProcessRecord, ProcessStatus, TaskDescriptor

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass
class ProcessState:
    task_id: str
    status: ProcessStatus = ProcessStatus.NEW
    last_start: datetime | None = None
    last_stop: datetime | None = None
    pid: int | None = None
    task: TaskDescriptor | None = None

    @property
    def is_running(self) -> bool:
        return self.status is ProcessStatus.RUNNING

    @classmethod
    def from_record(cls, record: ProcessRecord) -> ProcessState:
        return cls(
            task_id=record.id,
            status=record.status,
            last_start=record.last_start,
            last_stop=record.last_stop,
            pid=record.pid,
            task=record.task,
        )

    def to_record(self) -> ProcessRecord:
        return ProcessRecord(
            id=self.task_id,
            status=self.status,
            last_start=self.last_start,
            last_stop=self.last_stop,
            pid=self.pid,
            task=self.task,
        )


class ProcessStore:
    """
    One JSON record per task identity inside the runtime directory.

    Writes replace the whole file under an exclusive ``flock``; reads take a
    shared lock so they never observe a half-written record.
    """

    def __init__(self, runtime_dir: str | Path) -> None:
        self.runtime_dir = Path(runtime_dir)
        self.runtime_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, task_id: str) -> Path:
        if not _ID_RE.match(task_id or ""):
            raise InvalidProcessRecord(f"Bad task identity: {task_id!r}")
        return self.runtime_dir / f"{task_id}.json"

    def exists(self, task_id: str) -> bool:
        return self.path_for(task_id).is_file()

    def read_text(self, task_id: str) -> str | None:
        path = self.path_for(task_id)
        if not path.is_file():
            return None
        with open(path, "r", encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            try:
                return f.read()
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)

    def read(self, task_id: str) -> ProcessRecord | None:
        text = self.read_text(task_id)
        if text is None or not text.strip():
            return None
        try:
            record = ProcessRecord.model_validate_json(text)
        except ValidationError as e:
            raise InvalidProcessRecord(f"Process record {task_id} is malformed: {e}") from e
        if record.id != task_id:
            raise InvalidProcessRecord(f"Process record {task_id} belongs to task {record.id}")
        return record

    def write(self, record: ProcessRecord) -> None:
        data = record.dump().encode("utf-8")
        with open(self.path_for(record.id), "ab") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            try:
                f.truncate(0)
                f.write(data)
                f.flush()
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)
        logger.debug("process record saved id=%s status=%s pid=%s", record.id, record.status.name, record.pid)

    def load(self, task_id: str) -> ProcessState | None:
        record = self.read(task_id)
        return ProcessState.from_record(record) if record else None

    def save(self, state: ProcessState) -> None:
        self.write(state.to_record())

    def list_ids(self) -> list[str]:
        return sorted(p.stem for p in self.runtime_dir.glob("*.json"))
