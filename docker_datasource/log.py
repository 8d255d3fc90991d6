"""Structured logging setup shared by the CLI and the API server."""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog for the process.

    Args:
        log_level: Minimum level to emit (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Render one JSON object per line instead of console format.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


__all__ = ["configure_logging"]
