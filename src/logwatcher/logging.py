"""Structured logging configuration for logwatcher.

Sets up structlog with pretty console output on a terminal and JSON otherwise.
Diagnostics go to stderr so that stdout only carries the tailed lines.
"""

import logging
import sys
from typing import cast

import structlog


def configure_logging(level: str = "WARNING", json: bool | None = None) -> None:
    """Configure structured logging for the process.

    Integrates structlog with Python's standard logging so that records from
    third-party libraries (httpx, prometheus_client) share the same output.

    Args:
        level: Log level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        json: Force JSON (True) or console (False) rendering; None picks
            console output when stderr is a TTY
    """
    log_level = getattr(logging, level.upper())
    if json is None:
        json = not sys.stderr.isatty()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processor=renderer,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger instance.

    Args:
        name: Optional logger name (usually __name__ from calling module)

    Returns:
        Configured structlog logger
    """
    return cast(structlog.BoundLogger, structlog.get_logger(name))
