"""Logging bootstrap.

The terminal belongs to the TUI while the pager runs, so records only ever go
to a rotating file, and only when a log file was asked for.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_ENV = "JPAGER_LOG_FILE"
LOG_LEVEL_ENV = "JPAGER_LOG_LEVEL"


def _parse_level(raw: str | None) -> int:
    normalized = str(raw or "INFO").strip().upper()
    level = getattr(logging, normalized, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def _make_file_handler(level: int, file_path: str) -> logging.Handler:
    handler = RotatingFileHandler(
        file_path,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    return handler


def configure(level: str | None = None, file_path: str | None = None) -> str | None:
    """Wire the ``jpager`` logger.  Returns the log file path, if any.

    Arguments win over ``JPAGER_LOG_LEVEL`` / ``JPAGER_LOG_FILE``.
    """
    level_value = _parse_level(level or os.environ.get(LOG_LEVEL_ENV))
    file_path = file_path or os.environ.get(LOG_FILE_ENV) or None

    logger = logging.getLogger("jpager")
    logger.setLevel(level_value)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    if file_path is None:
        logger.addHandler(logging.NullHandler())
        return None

    Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    logger.addHandler(_make_file_handler(level_value, file_path))
    logging.captureWarnings(True)
    return file_path
