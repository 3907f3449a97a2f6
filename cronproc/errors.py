from __future__ import annotations


class CronError(Exception):
    pass


class InvalidSchedule(CronError, ValueError):
    def __init__(self, field: str, value: str, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Bad syntax for '{field}' (value: '{value}'): {reason}")


class InvalidTaskDefinition(CronError, ValueError):
    pass


class MissingProcessRecord(CronError, LookupError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Process record for task '{task_id}' is not available. Wrong identity?")


class InvalidProcessRecord(CronError, ValueError):
    pass


class InvalidExecutionContext(CronError, RuntimeError):
    pass


class RegistryError(CronError, RuntimeError):
    pass


class CommandFailed(CronError, RuntimeError):
    def __init__(self, message: str, exit_code: int | None = None) -> None:
        self.exit_code = exit_code
        super().__init__(message)
