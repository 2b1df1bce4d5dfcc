import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from workforce.core.config import settings

# Correlation ID for the current request; empty for scripts and scheduled jobs
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "multipart")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def __init__(self, *args, environment: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.environment = environment

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id
        if self.environment:
            log_record["environment"] = self.environment

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = (log_record.get("level") or record.levelname).upper()


def setup_logging(level: Optional[str] = None):
    """
    Installs the JSON handler on the root logger.

    Safe to call twice: the API and the CLI scripts both call it.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    if any(isinstance(h.formatter, CustomJsonFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(CustomJsonFormatter(
        "%(timestamp) %(level) %(name) %(message)",
        environment=settings.environment,
    ))
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
