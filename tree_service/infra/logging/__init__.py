"""Logging infrastructure.

Provides structured logging with:
- JSONL format for log aggregation, or plain text for development
- Automatic context injection (operation, node_id, ...)
- QueueHandler + QueueListener for non-blocking I/O
- Lazy evaluation for debug messages

Basic usage:
    import logging

    from tree_service.infra.logging import get_lazy_logger, log_context

    logger = logging.getLogger(__name__)
    lazy_logger = get_lazy_logger(__name__)

    with log_context(operation="tree.insert"):
        logger.info("Inserting node")  # record carries operation
        lazy_logger.debug(lambda: f"plan: {plan.steps}")  # formatted only at DEBUG
"""

from tree_service.infra.logging.config import (
    configure_logging,
    setup_logging,
    shutdown,
)
from tree_service.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    set_log_context,
)
from tree_service.infra.logging.formatters import JSONFormatter
from tree_service.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
