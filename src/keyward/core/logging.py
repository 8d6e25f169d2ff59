"""Structured logging for keyward.

All logs go to stderr so stdout stays clean for command output.
Call configure_logging() once at startup; modules obtain loggers with
get_logger(__name__).
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(level: str = "WARNING", *, json_output: bool = False) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        json_output: Emit JSON lines instead of the console renderer
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )

    # ConsoleRenderer formats exceptions itself
    renderers: list[Any]
    if json_output:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Get a structlog logger, optionally bound with context values.

    Usage:
        logger = get_logger(__name__)
        logger.info("Alias registered", alias="bob", network="testnet")
    """
    logger = structlog.get_logger(name)
    if initial_values:
        return logger.bind(**initial_values)
    return logger
