"""Log setup for the API server: daily-rotated file plus console."""
from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from .settings import Settings

LOG_FILE_NAME = "tabnav.log"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# uvicorn's own loggers; their records are handled by the root handlers.
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def log_dir_for(settings: Settings) -> Path:
    """Absolute log directory. Relative paths resolve against the working
    directory, like TABNAV_STORE_PATH."""
    return settings.TABNAV_LOG_DIR.expanduser().resolve()


def _level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _handlers(log_file: Path, backup_count: int) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        backupCount=max(0, backup_count),
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()

    for h in (file_handler, console_handler):
        h.setFormatter(formatter)
    return [file_handler, console_handler]


def _route_uvicorn(access: bool) -> None:
    for name in UVICORN_LOGGERS:
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.setLevel(logging.INFO)
        lg.propagate = True
    # Every tab switch is a request; the access log stays off unless asked for.
    logging.getLogger("uvicorn.access").disabled = not access


def setup_logging(settings: Settings) -> Path:
    """Send tabnav and uvicorn logs to `<log dir>/tabnav.log` and the console.

    The `tabnav` logger runs at TABNAV_LOG_LEVEL; everything else that reaches
    the root logger is kept at WARNING. Calling it again replaces the root
    handlers instead of stacking them.

    Returns:
        Path of the active log file
    """
    log_dir = log_dir_for(settings)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.handlers = _handlers(log_file, settings.TABNAV_LOG_BACKUP_COUNT)
    root.setLevel(logging.WARNING)

    level = _level(settings.TABNAV_LOG_LEVEL)
    app_logger = logging.getLogger("tabnav")
    app_logger.setLevel(level)

    _route_uvicorn(settings.TABNAV_LOG_ACCESS)

    app_logger.info(
        "logging to %s (level=%s, access log %s)",
        log_file,
        logging.getLevelName(level),
        "on" if settings.TABNAV_LOG_ACCESS else "off",
    )
    return log_file
