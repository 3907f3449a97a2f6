from __future__ import annotations
import argparse
import logging
import shlex
import sys
from functools import partial

from cronproc.config import Settings, settings as default_settings
from cronproc.executor import ShellCommandRunner
from cronproc.lifecycle import LifecycleTracker
from cronproc.process import ProcessStore
from cronproc.registry import TaskRegistry
from cronproc.service import EXIT_FAILED, EXIT_OK, CronService
from cronproc.utils import now_local, setup_logging

logger = logging.getLogger(__name__)


def build_service(cfg: Settings, runtime_dir: str | None = None) -> CronService:
    clock = partial(now_local, cfg.TIMEZONE)
    wrapper = shlex.split(cfg.WRAPPER_COMMAND) or [sys.executable, "-m", "cronproc"]
    tracker = LifecycleTracker(
        ProcessStore(runtime_dir or cfg.RUNTIME_DIR),
        wrapper_command=wrapper,
        clock=clock,
        hash_func=cfg.HASH_FUNC,
    )
    return CronService(
        TaskRegistry.from_callback(cfg.TASKS_CALLBACK),
        tracker,
        ShellCommandRunner(shlex.split(cfg.CONSOLE_COMMAND)),
        enabled=cfg.CRON_ENABLED,
        clock=clock,
    )


def format_index(service: CronService) -> str:
    lines = [f"Cron processor status: {'ACTIVE' if service.enabled else 'DISABLED'}", ""]
    for row in service.status():
        output = f" > {row.output_file}" if row.output_file else ""
        lines.append(f"Task '{row.name}':")
        lines.append(f"{row.schedule} {row.command_line}{output}")
        lines.append(
            f"Last start: {row.last_start or ''}     Last finish: {row.last_stop or ''}     "
            f"Status: {row.status_label}"
        )
        lines.append("")
    return "\n".join(lines)


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cronproc", description="Run scheduled console tasks.")
    parser.add_argument("--runtime-dir", help="directory with task process records (default: RUNTIME_DIR)")
    sub = parser.add_subparsers(dest="action")

    daemon = sub.add_parser("daemon", help="check every task once and spawn the due ones (run each minute)")
    daemon.add_argument("--forever", action="store_true", help="keep running and tick every minute")

    run = sub.add_parser("run", help="execute one task in the foreground (wrapper entry point)")
    run.add_argument("--id", required=True, dest="task_id", help="task identity")
    run.add_argument("--runtime-dir", dest="run_runtime_dir", help=argparse.SUPPRESS)

    sub.add_parser("index", help="show tasks with their schedule and last status")
    sub.add_parser("serve", help="serve the HTTP status API")
    return parser


def main(argv: list[str] | None = None, cfg: Settings | None = None) -> int:
    cfg = cfg or default_settings
    args = make_parser().parse_args(argv)
    action = args.action or "index"
    runtime_dir = getattr(args, "run_runtime_dir", None) or args.runtime_dir

    setup_logging(cfg, console=action != "run")
    service = build_service(cfg, runtime_dir)

    if action == "daemon":
        if args.forever:
            from cronproc.scheduler import TickScheduler

            TickScheduler(service, cfg.TIMEZONE).run_forever()
            return EXIT_OK
        try:
            service.tick()
        except Exception:
            logger.exception("tick failed")
            return EXIT_FAILED
        return EXIT_OK

    if action == "run":
        return service.run_task(args.task_id, trap_signals=True)

    if action == "serve":
        import uvicorn

        from cronproc.main import create_app
        from cronproc.scheduler import TickScheduler

        scheduler = TickScheduler(service, cfg.TIMEZONE) if cfg.SCHEDULER_ENABLED else None
        uvicorn.run(create_app(service, scheduler, cfg.ROOT_PATH), host=cfg.HOST, port=cfg.PORT)
        return EXIT_OK

    print(format_index(service))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
