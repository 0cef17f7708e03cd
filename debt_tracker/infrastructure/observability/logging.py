"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from debt_tracker.config import settings

logger = logging.getLogger("debt_tracker")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_event(step: str, message: str, **fields: Any) -> None:
    """Log an engine event with its identifiers as structured fields"""
    extra = {"step": step}
    extra.update({key: str(value) if value is not None else None for key, value in fields.items()})
    logger.info(message, extra=extra)


def log_schedule_failure(user_id: str, kind: str, instrument_id: Any, error: Exception) -> None:
    """Log an instrument rolled back because its installments were not stored"""
    logger.error(
        "Schedule generation failed",
        extra={
            "step": "schedule_generation_failed",
            "user_id": user_id,
            "kind": kind,
            "instrument_id": str(instrument_id),
            "error": repr(error),
        },
    )
