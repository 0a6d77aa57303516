"""Logging utilities for vidctl.

Provides structured logging with audit trail support.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import Any, Optional

# =============================================================================
# Constants
# =============================================================================

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
AUDIT_LOGGER_NAME = "vidctl.audit"


# =============================================================================
# Logger Setup
# =============================================================================


def setup_logging(
    level: int = logging.WARNING,
    *,
    quiet: bool = False,
    verbose: bool = False,
) -> None:
    """Configure logging for vidctl.

    Args:
        level: Base logging level.
        quiet: If True, only show errors.
        verbose: If True, show debug messages.
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stderr,
    )

    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)


# =============================================================================
# Log Context
# =============================================================================


class LogContext:
    """Context manager for structured logging with context fields."""

    def __init__(
        self,
        operation: str,
        logger: Optional[logging.Logger] = None,
        **context: Any,
    ):
        """Initialize log context.

        Args:
            operation: Name of the operation.
            logger: Logger instance.
            **context: Additional context fields.
        """
        self.operation = operation
        self.logger = logger or get_logger(__name__)
        self.context = context
        self.start_time: Optional[datetime] = None

    def __enter__(self) -> "LogContext":
        self.start_time = datetime.now()
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        self.logger.info("Starting %s (%s)", self.operation, ctx_str)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        duration = (datetime.now() - self.start_time).total_seconds() if self.start_time else 0

        if exc_type:
            self.logger.error(
                "%s failed after %.2fs: %s",
                self.operation,
                duration,
                exc_val,
            )
        else:
            self.logger.info("%s completed in %.2fs", self.operation, duration)


# =============================================================================
# Audit Logger
# =============================================================================


class AuditLogger:
    """Logger for audit trail of finalized uploads."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)

    def log_operation(
        self,
        operation: str,
        *,
        channel: Optional[str] = None,
        upload_id: Optional[str] = None,
        filename: Optional[str] = None,
        success: bool = True,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Log an auditable operation.

        Args:
            operation: Name of the operation.
            channel: Channel the upload belongs to.
            upload_id: Server-issued upload identifier.
            filename: Name of the uploaded file.
            success: Whether operation succeeded.
            details: Additional details.
        """
        audit_record: dict[str, Any] = {
            "timestamp": datetime.now().isoformat(),
            "operation": operation,
            "success": success,
        }

        if channel:
            audit_record["channel"] = channel
        if upload_id:
            audit_record["upload_id"] = upload_id
        if filename:
            audit_record["filename"] = filename
        if details:
            audit_record["details"] = details

        level = logging.INFO if success else logging.WARNING
        self.logger.log(level, "AUDIT: %s", audit_record)


def get_audit_logger() -> AuditLogger:
    """Get the audit logger instance."""
    return AuditLogger()
