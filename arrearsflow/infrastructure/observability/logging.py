"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from arrearsflow.domain.models import AnalysisResult


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "arrearsflow-engine"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_analysis(request_id: str, result: AnalysisResult, duration_ms: float, source: str = "detail") -> None:
    """Log one debtor evaluation for audit of grade assignments"""
    logging.info(
        "Analysis completed",
        extra={
            "request_id": request_id,
            "debtor_id": result.debtor_id,
            "step": "analysis_complete",
            "source": source,
            "grade": result.assigned_grade,
            "fallback_applied": result.fallback_applied,
            "contact_blocked": result.is_contact_blocked,
            "days_since_payment": result.days_since_last_payment,
            "rule_set_version": result.rule_set_version,
            "duration_ms": duration_ms,
        },
    )


def log_batch(
    request_id: str,
    debtor_count: int,
    rule_set_version: Optional[int],
    duration_ms: float,
    source: str,
) -> None:
    """Log a list or dashboard pass evaluated against one rule snapshot"""
    logging.info(
        "Batch analysis completed",
        extra={
            "request_id": request_id,
            "step": "batch_complete",
            "source": source,
            "debtor_count": debtor_count,
            "rule_set_version": rule_set_version,
            "duration_ms": duration_ms,
        },
    )
