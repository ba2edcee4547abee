"""
Contextual logging utilities for MDB_BRIDGE.

Adds a correlation ID and the namespace an operation runs against to every
log record emitted through get_logger().
"""

import contextvars
import logging
import uuid
from datetime import datetime
from typing import Any

# Context variable for correlation ID
_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

# Context variable for the store namespace being operated on
_store_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "store_context", default=None
)


def get_correlation_id() -> str | None:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Set a correlation ID in the current context.

    Args:
        correlation_id: Optional correlation ID (generates new one if None)

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    """Clear the correlation ID from context."""
    _correlation_id.set(None)


def set_store_context(
    database: str | None = None, collection: str | None = None, **kwargs: Any
) -> contextvars.Token:
    """
    Set store context for logging.

    Args:
        database: Database name
        collection: Collection name
        **kwargs: Additional context (operation, etc.)

    Returns:
        Token that restores the previous context when passed to reset_store_context
    """
    context = {"database": database, "collection": collection, **kwargs}
    return _store_context.set(context)


def reset_store_context(token: contextvars.Token) -> None:
    """Restore the store context that was active before set_store_context."""
    _store_context.reset(token)


def get_logging_context() -> dict[str, Any]:
    """
    Get current logging context (correlation ID and store context).

    Returns:
        Dictionary with context information
    """
    context: dict[str, Any] = {
        "timestamp": datetime.now().isoformat(),
    }

    correlation_id = get_correlation_id()
    if correlation_id:
        context["correlation_id"] = correlation_id

    store_context = _store_context.get()
    if store_context:
        context.update(store_context)

    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that automatically adds context to log records.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Add context to log records."""
        context = get_logging_context()

        extra = kwargs.get("extra", {})
        if extra:
            context.update(extra)

        kwargs["extra"] = context
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    """
    Get a contextual logger that automatically adds correlation ID and context.

    Args:
        name: Logger name (typically __name__)

    Returns:
        ContextualLoggerAdapter instance
    """
    base_logger = logging.getLogger(name)
    return ContextualLoggerAdapter(base_logger, {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: float | None = None,
    **context: Any,
) -> None:
    """
    Log an operation with structured context.

    Args:
        logger: Logger instance
        operation: Operation name
        level: Log level
        success: Whether operation succeeded
        duration_ms: Operation duration in milliseconds
        **context: Additional context
    """
    log_context = get_logging_context()
    log_context.update(
        {
            "operation": operation,
            "success": success,
        }
    )

    if duration_ms is not None:
        log_context["duration_ms"] = round(duration_ms, 2)

    if context:
        log_context.update(context)

    message = f"Operation: {operation}"
    if not success:
        message = f"Operation failed: {operation}"
    if duration_ms is not None:
        message += f" (duration: {duration_ms:.2f}ms)"

    logger.log(level, message, extra=log_context)
