from __future__ import annotations
import logging
import subprocess
from typing import Any, Callable, Mapping, Protocol, Sequence

import psutil

from cronproc.errors import CommandFailed

logger = logging.getLogger(__name__)


def spawn_detached(argv: Sequence[str], output_file: str | None = None) -> int:
    """
    Start argv in its own session and return at once with its pid.
    stdout and stderr go to output_file (truncated) or to /dev/null.
    """
    out = open(output_file, "w", encoding="utf-8") if output_file else subprocess.DEVNULL
    try:
        p = subprocess.Popen(
            list(argv),
            stdin=subprocess.DEVNULL,
            stdout=out,
            stderr=subprocess.STDOUT,
            close_fds=True,
            start_new_session=True,  # survive the spawning tick
        )
    finally:
        # the child holds its own copy of the descriptor
        if output_file:
            out.close()
    return p.pid


def pid_alive(pid: int) -> bool:
    if pid is None or pid <= 0:
        return False
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except (psutil.NoSuchProcess, psutil.ZombieProcess):
        return False
    except psutil.AccessDenied:
        # exists, owned by someone else
        return True


def run_argv(argv: Sequence[str]) -> int:
    """Run argv in the foreground, inheriting stdout/stderr; no timeout."""
    p = subprocess.Popen(list(argv), stdin=subprocess.DEVNULL)
    try:
        return p.wait()
    except BaseException:
        # interrupted (signal / KeyboardInterrupt): don't leave the child behind
        p.terminate()
        p.wait()
        raise


class CommandRunner(Protocol):
    def run(self, command: str, action: str | None, params: Mapping[str, Any]) -> None: ...


class ShellCommandRunner:
    """
    Executes ``<console> command [action] --k=v ...`` and waits for it.
    With an empty console prefix the command itself is the executable.
    """

    def __init__(self, console: Sequence[str] = ()) -> None:
        self.console = list(console)

    def argv(self, command: str, action: str | None, params: Mapping[str, Any]) -> list[str]:
        argv = [*self.console, command]
        if action:
            argv.append(action)
        argv.extend(f"--{k}={v}" for k, v in params.items())
        return argv

    def run(self, command: str, action: str | None, params: Mapping[str, Any]) -> None:
        argv = self.argv(command, action, params)
        logger.debug("exec argv=%s", argv)
        try:
            code = run_argv(argv)
        except OSError as e:
            raise CommandFailed(f"Cannot execute {argv[0]!r}: {e}") from e
        if code != 0:
            raise CommandFailed(f"Command {' '.join(argv)!r} exited with code {code}", exit_code=code)


class CallableCommandRunner:
    """Dispatches commands to Python callables registered by name, in-process."""

    def __init__(self, commands: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._commands: dict[str, Callable[..., Any]] = dict(commands or {})

    def register(self, name: str, func: Callable[..., Any]) -> None:
        self._commands[name] = func

    def run(self, command: str, action: str | None, params: Mapping[str, Any]) -> None:
        func = self._commands.get(command)
        if func is None:
            raise CommandFailed(f"Unknown command: {command}")
        func(action, **params)
