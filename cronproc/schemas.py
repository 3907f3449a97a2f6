from __future__ import annotations
from datetime import datetime
from enum import IntEnum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from cronproc.utils import format_ts, parse_ts

ParamValue = Union[str, int, float, bool]


class ProcessStatus(IntEnum):
    NEW = 0
    RUNNING = 1
    FINISHED = 2
    FAILED = 3

    def label(self, pid: Optional[int] = None) -> str:
        if self is ProcessStatus.NEW:
            return "NEW (not started yet)"
        if self is ProcessStatus.RUNNING:
            return f"RUNNING (PID: {pid})"
        return self.name


class TaskDescriptor(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    name: Optional[str] = None
    command: str
    action: Optional[str] = None
    params: dict[str, ParamValue] = Field(default_factory=dict)
    unique: bool = False
    output_file: Optional[str] = Field(default=None, alias="outputFile")


class ProcessRecord(BaseModel):
    """On-disk form of one task's process state (``<runtime dir>/<id>.json``)."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str
    status: ProcessStatus = ProcessStatus.NEW
    last_start: Optional[datetime] = Field(default=None, alias="lastStart")
    last_stop: Optional[datetime] = Field(default=None, alias="lastStop")
    pid: Optional[int] = Field(default=None, gt=0)
    task: Optional[TaskDescriptor] = None

    @field_validator("last_start", "last_stop", mode="before")
    @classmethod
    def _parse_timestamp(cls, v):
        # only the "YYYY-MM-DD HH:MM:SS" form is accepted from disk
        if isinstance(v, str):
            return parse_ts(v)
        return v

    @field_serializer("last_start", "last_stop")
    def _format_timestamp(self, v: Optional[datetime]) -> Optional[str]:
        return format_ts(v)

    def dump(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class TaskStatusOut(BaseModel):
    id: str
    name: str
    schedule: str
    command_line: str
    unique: bool
    output_file: Optional[str] = None
    status: str
    status_label: str
    pid: Optional[int] = None
    last_start: Optional[str] = None
    last_stop: Optional[str] = None
