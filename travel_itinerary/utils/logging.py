"""Structured logging for table store calls."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

_QUIET_OUTCOMES = ("success", "not_found")


class StructuredStoreLogger:
    """Structured logger for table store operations."""

    def log_operation(
        self,
        table: str,
        operation: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log one store call with structured data."""
        log_data: dict[str, Any] = {
            "table": table,
            "operation": operation,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Store call: {table}.{operation} - {outcome}"

        if outcome in _QUIET_OUTCOMES:
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
