from __future__ import annotations
from datetime import datetime
from logging.handlers import RotatingFileHandler
from zoneinfo import ZoneInfo
import logging
import os
import sys

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)

def now_local(timezone: str = "") -> datetime:
    """
    Naive wall-clock time, in `timezone` when given, otherwise the host's local time.
    """
    if timezone:
        return datetime.now(ZoneInfo(timezone)).replace(tzinfo=None, microsecond=0)
    return datetime.now().replace(microsecond=0)

def format_ts(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.strftime(TIMESTAMP_FORMAT)

def parse_ts(raw: str) -> datetime:
    return datetime.strptime(raw, TIMESTAMP_FORMAT)

def setup_logging(settings, console: bool = False) -> None:
    ensure_dir(settings.LOG_DIR)
    log_path = os.path.join(settings.LOG_DIR, settings.APP_LOG_NAME)
    fmt = logging.Formatter(LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(fmt)
        root.addHandler(handler)
    if console and not any(getattr(h, "stream", None) is sys.stderr for h in root.handlers):
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(fmt)
        root.addHandler(stream)

def flush_logs() -> None:
    for h in logging.getLogger().handlers:
        h.flush()
