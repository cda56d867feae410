"""Structured logging setup — structlog routed through the standard library.

Every log entry carries the ISO timestamp, level, logger name and any
contextvars bound by the correlation middleware (correlation_id, method,
path).

Usage:
    from autocare.log_config import configure_logging
    configure_logging(log_level="DEBUG", log_format="console")
"""

from __future__ import annotations

import logging
import sys
from typing import Literal

import structlog
from structlog.types import Processor


def configure_logging(
    log_level: str = "INFO",
    log_format: Literal["json", "console"] | str = "json",
) -> None:
    """Configure structlog and the stdlib root logger.

    Safe to call again; each call replaces the previous configuration.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        log_format: "json" for machine-readable output, "console" for humans.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "console":
        processors.append(
            structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)
        )
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )
    logging.getLogger("autocare").setLevel(level)
