from cronproc.errors import (
    CommandFailed,
    CronError,
    InvalidExecutionContext,
    InvalidProcessRecord,
    InvalidSchedule,
    InvalidTaskDefinition,
    MissingProcessRecord,
    RegistryError,
)
from cronproc.lifecycle import Decision, LifecycleTracker
from cronproc.process import ProcessState, ProcessStore
from cronproc.registry import TaskRegistry
from cronproc.schedule import Month, ScheduleSpec, Weekday, evaluate, parse_cron, parse_field
from cronproc.schemas import ProcessStatus
from cronproc.service import CronService
from cronproc.task import Task

__version__ = "0.1.0"
