"""
JSON logging for the API and Celery workers.
Messages are event names (order_approved, amount_mismatch, ...); context goes in `extra`.
"""
import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from app.core.config import settings

SERVICE_NAME = "rank-booking"

# per-request lines come from the app middleware
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; only whitelisted `extra` fields are emitted."""

    EXTRA_FIELDS = (
        "order_id", "payment_id", "link_id", "request_id", "path", "method",
        "status_code", "latency_ms", "event_type", "error", "email",
        "expected_amount", "observed_amount", "payment_status", "payment_mode",
        "old_status", "new_status", "breaker_name", "old_state", "new_state",
        "ip", "attempts", "outcome",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    formatter = JsonFormatter()
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    handlers: list[logging.Handler] = [stream]
    if settings.log_file:
        file_handler = RotatingFileHandler(
            settings.log_file,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    root.handlers = handlers
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
