"""Structured logging setup.

Every module logs through ``structlog.get_logger(__name__)``; this module
configures the processors and renderer once for the process.
"""

import logging
import sys

import structlog


def configure_logging(log_level: str = "INFO", *, dev_mode: bool = False) -> None:
    """Configure structlog for the process.

    Args:
        log_level: Minimum level name to emit (DEBUG, INFO, WARNING, ERROR).
        dev_mode: Render human-readable console output instead of JSON.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")  # noqa: TRY003

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if dev_mode:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.extend(
            [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
