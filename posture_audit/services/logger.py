"""Structured JSON logging."""

import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger


# Global run ID for correlation across log entries
RUN_ID = str(uuid.uuid4())


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter that adds run_id and standardized fields."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        """Add custom fields to log record.

        Args:
            log_record: The log record to modify.
            record: The original logging.LogRecord.
            message_dict: Additional fields from the logging call.
        """
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = (
            datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        )
        log_record["run_id"] = RUN_ID
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure structured JSON logging for the application.

    Logs go to stderr so the JSON report can own stdout.

    Args:
        verbose: Enable DEBUG level.

    Returns:
        logging.Logger: Configured root logger.
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    json_handler = logging.StreamHandler(sys.stderr)
    json_handler.setFormatter(CustomJsonFormatter("%(message)s"))
    logger.addHandler(json_handler)

    return logger


def log_item_result(
    item_id: int,
    target: str,
    kind: str,
    state: str,
    reason: str,
    duration_ms: int,
) -> None:
    """Log structured per-item audit result.

    Args:
        item_id: 1-based item id within the batch.
        target: Normalized target.
        kind: Audit kind.
        state: Terminal lifecycle state.
        reason: Human-readable reason.
        duration_ms: Processing time in milliseconds.
    """
    logger = logging.getLogger(__name__)
    logger.info(
        "Audit item completed",
        extra={
            "item_id": item_id,
            "target": target,
            "kind": kind,
            "state": state,
            "reason": reason,
            "duration_ms": duration_ms,
        },
    )


def log_batch_summary(
    kind: str,
    total_items: int,
    state_counts: Dict[str, int],
    listed: int,
    duration_sec: float,
) -> None:
    """Log batch completion summary.

    Args:
        kind: Audit kind of the batch.
        total_items: Number of items audited.
        state_counts: Items per lifecycle state.
        listed: Number of items listed on a blocklist.
        duration_sec: Total batch time in seconds.
    """
    logger = logging.getLogger(__name__)
    logger.info(
        "Batch completed",
        extra={
            "kind": kind,
            "total_items": total_items,
            "state_counts": state_counts,
            "listed": listed,
            "duration_sec": duration_sec,
        },
    )


def log_network_issue(failure_rate: float, failed_items: int) -> None:
    """Log a suspected network outage when most items failed.

    Args:
        failure_rate: Fraction of items in error/timeout.
        failed_items: Number of failed items.
    """
    logger = logging.getLogger(__name__)
    logger.error(
        "Network connectivity issue detected",
        extra={
            "failure_rate": failure_rate,
            "failed_items": failed_items,
        },
    )
