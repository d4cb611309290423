"""Structured JSON logging for production observability"""

import logging
import sys
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from finadvisor.config import settings
from finadvisor.utils.date_utils import utcnow


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = utcnow().isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_score_calculated(
    request_id: str,
    tenant_id: str,
    overall_score: int,
    score_band: str,
    duration_ms: float,
) -> None:
    """Log structured credit score outcome for analysis"""
    logging.info(
        "Credit score calculated",
        extra={
            "request_id": request_id,
            "tenant_id": tenant_id,
            "step": "credit_score_complete",
            "overall_score": overall_score,
            "score_band": score_band,
            "duration_ms": duration_ms,
        },
    )


def log_affordability_assessed(
    request_id: str,
    tenant_id: str,
    loan_type: str,
    requested_amount: float,
    affordability_band: str,
    duration_ms: float,
) -> None:
    logging.info(
        "Loan affordability assessed",
        extra={
            "request_id": request_id,
            "tenant_id": tenant_id,
            "step": "affordability_complete",
            "loan_type": loan_type,
            "requested_amount": requested_amount,
            "affordability_band": affordability_band,
            "duration_ms": duration_ms,
        },
    )


def log_advice_generated(tenant_id: str, fallback_sections: list, duration_ms: float) -> None:
    logging.info(
        "Personalised advice generated",
        extra={
            "tenant_id": tenant_id,
            "step": "advice_complete",
            "outcome": "ai" if not fallback_sections else "fallback",
            "fallback_sections": fallback_sections,
            "duration_ms": duration_ms,
        },
    )
