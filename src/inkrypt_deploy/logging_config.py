"""Structured logging configuration for deployment commands.

Uses structlog on top of stdlib logging and renders either JSON (for log
collection in CI) or console format (for local runs). Logs go to stderr so
stdout stays free for command results.

Usage:
    from inkrypt_deploy.logging_config import get_logger, setup_logging

    setup_logging(log_format="console", log_level="INFO")
    logger = get_logger(__name__)
    logger.info("event_name", key1=value1, key2=value2)
"""

import logging
import sys
from typing import Literal

import structlog
from structlog.types import Processor


def setup_logging(
    log_format: Literal["json", "console"] = "console",
    log_level: str = "INFO",
    command: str | None = None,
) -> None:
    """Configure structured logging with structlog.

    Args:
        log_format: Output format - "json" for CI log collection, "console" for humans.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        command: Name of the command being run, bound to every event.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=False),
        # Merge contextvars (command name, zone_id, ...)
        structlog.contextvars.merge_contextvars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=False))
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    structlog.contextvars.clear_contextvars()
    if command:
        structlog.contextvars.bind_contextvars(command=command)

    logger = structlog.get_logger()
    logger.debug("logging_initialized", log_format=log_format, log_level=log_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Optional logger name. If not provided, uses the caller's module name.

    Returns:
        Configured structlog logger instance.
    """
    return structlog.get_logger(name)
