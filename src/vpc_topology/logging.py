"""Structured logging with structlog."""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


@lru_cache(maxsize=1)
def _configure_logging(*, is_production: bool, log_level: str) -> None:
    """Configure structlog for the application.

    Args:
        is_production: Use JSON output for production, colorized for dev.
        log_level: Minimum level name, or "silent" to suppress all output.
    """
    # Shared processors for all environments
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if log_level == "silent":
        # Nothing is written, not even critical events
        structlog.configure(
            processors=shared_processors,
            wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
            context_class=dict,
            logger_factory=structlog.ReturnLoggerFactory(),
            cache_logger_on_first_use=True,
        )
        return

    min_level = _LEVELS[log_level]

    if is_production:
        # JSON lines, picked up by the Pulumi engine log
        structlog.configure(
            processors=[
                *shared_processors,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(min_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
            cache_logger_on_first_use=True,
        )
    else:
        # Colorized logging for development
        structlog.configure(
            processors=[
                *shared_processors,
                structlog.dev.ConsoleRenderer(colors=True),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(min_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
            cache_logger_on_first_use=True,
        )


def get_logger(name: str) -> FilteringBoundLogger:
    """Get a logger for a specific module.

    Args:
        name: Logger name (typically module name like "vpc_topology.zones").

    Returns:
        Configured structlog logger with service context.

    Example:
        >>> log = get_logger("vpc_topology.zones")
        >>> log.warning("zone_count_shortfall", requested=5, available=3)
    """
    # Lazy configuration on first logger access
    from vpc_topology.settings import get_settings

    settings = get_settings()
    _configure_logging(is_production=settings.is_production, log_level=settings.log_level)

    return structlog.get_logger(service=name)
