from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

LOGGER_NAME = "repo_to_text"
_LOGGING_CONFIGURED = False


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Set up structured logging for the repo_to_text package.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.

    Returns:
        A structlog logger instance configured for the repo_to_text package.
    """
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if not _LOGGING_CONFIGURED:
        handlers: list[logging.Handler] = []
        if filename:
            handlers.append(logging.FileHandler(str(filename), encoding="utf-8"))
        else:
            handlers.append(logging.StreamHandler(sys.stderr))

        logging.basicConfig(
            level=logging.INFO,
            handlers=handlers,
            format="%(message)s",
        )
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True

    return structlog.get_logger(LOGGER_NAME)


def add_log_file(filename: str | Path) -> logging.Handler:
    """Also write the package's log records to `filename`.

    `setup_logging` runs once at import time, so a log file requested later
    (e.g. by the CLI) is attached as an extra handler on the package logger.

    Args:
        filename: path of the log file to append to.

    Returns:
        logging.Handler: the attached handler, to pass to `remove_log_file`.
    """
    handler = logging.FileHandler(str(filename), encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(logging.INFO)
    package_logger.addHandler(handler)
    return handler


def remove_log_file(handler: logging.Handler) -> None:
    """Detach and close a handler returned by `add_log_file`."""
    logging.getLogger(LOGGER_NAME).removeHandler(handler)
    handler.close()


logger = setup_logging()
