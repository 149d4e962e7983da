"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "retiro-gateway"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_charges(
    request_id: str,
    registration_id: int,
    billing_type: str,
    created: int,
    failed_index: Optional[int],
    duration_ms: float,
) -> None:
    """Log structured billing outcome for analysis"""
    logging.info(
        "Charges created",
        extra={
            "request_id": request_id,
            "registration_id": registration_id,
            "step": "charges_complete",
            "billing_type": billing_type,
            "installments_created": created,
            "failed_index": failed_index,
            "duration_ms": duration_ms,
        },
    )


def log_notification(
    external_id: str,
    raw_status: str,
    matched: bool,
    registration_status: Optional[str],
) -> None:
    """Log structured notification outcome"""
    logging.info(
        "Payment notification processed",
        extra={
            "external_id": external_id,
            "raw_status": raw_status,
            "step": "notification_complete",
            "matched": matched,
            "registration_status": registration_status,
        },
    )
