"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from crowdfund_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "uvicorn.access")


def setup_logging(level: str = "INFO") -> None:
    """
    Send every log record to stdout as one JSON line.

    Library loggers that log per query or per HTTP call are held at WARNING
    so transition events stay readable at INFO.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_event(logger: logging.Logger, event: str, **fields: Any) -> None:
    """Log a state transition with its identifiers as structured fields"""
    logger.info(
        event.replace("_", " ").capitalize(),
        extra={"step": event, **{key: str(value) if value is not None else None for key, value in fields.items()}},
    )
