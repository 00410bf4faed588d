"""Capability-local structured logging utilities.

All components log through structlog with event-name style messages
(``logger.info("search_cache_hit", key=...)``). Services accept an injected
logger and bind their component name onto it.
"""

import logging
import sys
from typing import Any, Optional

import structlog


def get_component_logger(component: str, logger: Optional[Any] = None) -> Any:
    """Get logger bound to a component name.

    Args:
        component: Component name (e.g., "SessionStore", "Dispatcher")
        logger: Optional injected logger. If None, uses default structlog logger.

    Returns:
        Logger bound to the component name
    """
    base = logger or structlog.get_logger()
    return base.bind(component=component)


def get_logger() -> Any:
    """Get default structured logger."""
    return structlog.get_logger()


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog once at process start.

    Args:
        level: Standard logging level name.
        json_output: Render JSON lines instead of the console renderer.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
