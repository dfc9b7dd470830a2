"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, TextIO

from pythonjsonlogger import jsonlogger

from stockdesk.config import settings

logger = logging.getLogger("stockdesk")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Configure structured JSON logging on stream (stdout by default)"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    # JSON handler
    handler = logging.StreamHandler(stream or sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_payment_applied(
    kind: str,
    record_id: str,
    amount: Decimal,
    remaining: Decimal,
    status: str,
) -> None:
    """Log structured payment outcome"""
    logger.info(
        "Payment applied",
        extra={
            "step": "payment_applied",
            "record_kind": kind,
            "record_id": record_id,
            "amount": str(amount),
            "remaining": str(remaining),
            "status": status,
        },
    )


def log_backend_failure(method: str, path: str, error: str, attempt: int) -> None:
    logger.warning(
        "Backend request failed",
        extra={
            "step": "backend_request",
            "method": method,
            "path": path,
            "error": error,
            "attempt": attempt,
        },
    )
