"""Logging setup for the API process."""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

from app.core.config import LogFormatEnum, settings

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Logging filter that stamps the current request id on each record."""

    def filter(self, record):
        record.request_id = request_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record):
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


SIMPLE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [%(request_id)s] %(message)s"


def setup_logging(level: str | None = None, log_format: LogFormatEnum | None = None) -> None:
    """Configure the root logger once from settings."""
    level = level or settings.log_level.value
    log_format = log_format or settings.log_format

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    if log_format == LogFormatEnum.json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_relay_handler", False):
            root.removeHandler(existing)
    handler._relay_handler = True
    root.addHandler(handler)
    root.setLevel(level)

    # Twilio logs every request/response at INFO
    logging.getLogger("twilio.http_client").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging is set up (level=%s, format=%s)", level, log_format.value)
