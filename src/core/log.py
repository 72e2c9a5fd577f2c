"""Structured logging setup (structlog).

Modules obtain loggers with `structlog.get_logger()` and emit snake_case
events with key/value context. The CLI calls `configure_logging` once.
"""

from __future__ import annotations

import logging
import sys

import structlog


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {level}")
    return value


def configure_logging(level: str | int = "INFO", *, json_output: bool = False) -> None:
    """Configure structlog for the whole process.

    Logs go to stderr so that command output on stdout stays clean.
    """

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_number(level)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
