"""Structured logging configuration.

Store operations bind their table and operation name with
``operation_context`` so every event logged underneath (index maintenance,
snapshot flushes) carries them without passing them down explicitly.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


def _drop_none_values(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    return {key: value for key, value in event_dict.items() if value is not None}


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    stream: TextIO | None = None,
) -> None:
    """
    Set up structured logging with structlog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
        stream: Output stream (default: stdout)
    """
    log_level = getattr(logging, level.upper())
    output = stream or sys.stdout
    logging.basicConfig(format="%(message)s", stream=output, level=log_level)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _drop_none_values,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: Processor
    if log_format == "json":
        # Record ids and values may be datetimes; fall back to str().
        renderer = structlog.processors.JSONRenderer(default=str)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=output.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a bound logger instance.

    Args:
        name: Logger name (module name typically)
        **initial_context: Initial context to bind to the logger

    Returns:
        A bound structlog logger
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


@contextmanager
def operation_context(operation: str, table: str | None = None) -> Iterator[None]:
    """Bind ``operation`` and ``table`` to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(operation=operation, table=table):
        yield
