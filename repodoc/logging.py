"""Logging utilities for repodoc commands."""

from __future__ import annotations

import logging
from pathlib import Path

from .urls import redact

_LOGGER_NAME = "repodoc"


class RedactingFilter(logging.Filter):
    """Strip credentials embedded in repository URLs from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the repodoc hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the repodoc logger with console output and an optional file sink.

    Every handler carries a :class:`RedactingFilter` so tokens passed inside
    clone URLs never reach the terminal or the log file.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI runs twice in one process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    redactor = RedactingFilter()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[repodoc] %(levelname)s %(message)s"))
    stream_handler.addFilter(redactor)
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        file_handler.addFilter(redactor)
        logger.addHandler(file_handler)

    return logger


__all__ = ["RedactingFilter", "configure_logging", "get_logger"]
