"""Structured logging helpers.

Log lines are JSON by default so they can be shipped as-is; ``pretty``
switches to structlog's console renderer for interactive use.
"""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: int = logging.INFO, *, pretty: bool = False) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
    )
    processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if pretty:
        # ConsoleRenderer formats exc_info itself.
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.extend([structlog.processors.format_exc_info, structlog.processors.JSONRenderer()])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()

__all__ = ["configure_logging", "logger"]
