"""Logging configuration for the certsync command line.

Library modules only create ``logging.getLogger(__name__)`` loggers; this
module attaches handlers to the ``certsync`` logger. Log files are opened
in append mode so every run adds to the same trail.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
PACKAGE_LOGGER = "certsync"


def configure_logging(log_file: Path | None = None, level: int = logging.INFO) -> logging.Logger:
    """Attach a stderr handler and, optionally, an append-only file handler.

    Calling it again replaces the handlers installed by the previous call.

    Parameters
    ----------
    log_file:
        Path of the log file. Parent directories are created.
    level:
        Minimum level emitted.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_certsync", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._certsync = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger
