"""Error logging helpers for schema reading and code generation."""

from typing import Any, Dict, Optional
from efrev.config.logging import get_logger

logger = get_logger(__name__)


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    operation: Optional[str] = None,
    table_name: Optional[str] = None,
    file_path: Optional[str] = None,
    log_level: str = "error",
) -> None:
    """
    Log an error with its type, message, context and traceback.

    Args:
        error: The exception that occurred
        context: Additional context dictionary (e.g., {'tables': 12})
        operation: Description of the operation being performed
        table_name: Name of the table being processed
        file_path: Output file being written, if any
        log_level: Logging level ('error', 'warning', 'critical')
    """
    error_type = type(error).__name__

    context_parts = []
    if operation:
        context_parts.append(f"Operation: {operation}")
    if table_name:
        context_parts.append(f"Table: {table_name}")
    if file_path:
        context_parts.append(f"File: {file_path}")
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        context_parts.append(f"Context: {context_str}")

    error_msg = f"[{error_type}] {error}"
    if context_parts:
        error_msg += " | " + " | ".join(context_parts)

    # exc_info=error keeps the traceback when called outside the except block
    if log_level.lower() == "critical":
        logger.critical(error_msg, exc_info=error)
    elif log_level.lower() == "warning":
        logger.warning(error_msg, exc_info=error)
    else:
        logger.error(error_msg, exc_info=error)

    cause = error.__cause__
    if cause is not None:
        logger.debug(f"Caused by [{type(cause).__name__}] {cause}")


def log_error_with_recovery(
    error: Exception,
    recovery_action: str,
    context: Optional[Dict[str, Any]] = None,
    operation: Optional[str] = None,
    table_name: Optional[str] = None,
) -> None:
    """
    Log an error and the recovery action taken.

    Args:
        error: The exception that occurred
        recovery_action: Description of how processing continues
        context: Additional context dictionary
        operation: Description of the operation being performed
        table_name: Name of the table where error occurred
    """
    log_error(
        error=error,
        context=context,
        operation=operation,
        table_name=table_name,
        log_level="warning",
    )
    logger.warning(f"Recovery action: {recovery_action}")
