"""
Application logging.

Every module logs through ``get_logger("<dotted.module>")``, a child of the
``taskbar_usage`` logger. ``configure_logging`` attaches a rotating log file
under the run's logs directory and, optionally, a stderr console handler.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FILE_NAME = "taskbar_usage.log"
LOGGER_NAMESPACE = "taskbar_usage"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


class UtcFormatter(logging.Formatter):
    """Render record timestamps as UTC ISO-8601 with a ``Z`` suffix."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return dt.strftime(datefmt or DATE_FORMAT) + "Z"


def resolve_level(level: Union[int, str], default: int = logging.INFO) -> int:
    """Map a level name from config.yml (``"debug"``, ``"WARNING"``) or a number to a level."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else default


def _reset_handlers(logger: Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def configure_logging(
    log_dir: Path,
    level: Union[int, str] = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    *,
    console: bool = True,
) -> Logger:
    """
    (Re)configure the application logger.

    Calling it again replaces the handlers of the previous call.

    Args:
        log_dir: Directory for taskbar_usage.log (created if missing)
        level: Level number or name
        max_bytes: Log file size that triggers rotation
        backup_count: Rotated files kept
        console: Also log to stderr; stdout is left to exported records

    Returns:
        The ``taskbar_usage`` logger
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    formatter = UtcFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    app_logger = logging.getLogger(LOGGER_NAMESPACE)
    app_logger.setLevel(resolve_level(level))
    _reset_handlers(app_logger)

    handlers = [RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)
        app_logger.addHandler(handler)

    app_logger.debug("Logging to %s (rotate at %d bytes, keep %d)", log_path, max_bytes, backup_count)
    return app_logger


def get_logger(name: Optional[str] = None) -> Logger:
    """Return ``taskbar_usage`` or one of its children."""
    base = logging.getLogger(LOGGER_NAMESPACE)
    return base.getChild(name) if name else base
