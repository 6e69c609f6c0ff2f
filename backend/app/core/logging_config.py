"""
SocietyPro - Centralized Logging Configuration

Development: readable text with request/user correlation ids.
Production: one JSON object per line for log aggregation.
"""

import logging
import sys
import json
import uuid
from datetime import datetime
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from app.core.config import settings


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')


def get_request_id() -> str:
    return request_id_var.get() or ''


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get() or ''


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


# Standard LogRecord attributes; everything else on a record came from `extra`
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {'message', 'asctime', 'request_id', 'user_id'}


class JSONFormatter(logging.Formatter):
    """Structured formatter for production"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if get_request_id():
            entry["request_id"] = get_request_id()
        if get_user_id():
            entry["user_id"] = get_user_id()
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update({
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith('_')
        })
        return json.dumps(entry, default=str)


class ContextualFormatter(logging.Formatter):
    """Text formatter exposing %(request_id)s and %(user_id)s"""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or '-'
        record.user_id = get_user_id() or '-'
        return super().format(record)


class SocietyLogger(logging.Logger):
    """Logger with helpers for the events we audit"""

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        self.log(
            level,
            f"HTTP {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": round(duration_ms, 2),
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        message = f"Auth {event}: {'success' if success else 'failed'}"
        if user_email:
            message += f" - {user_email}"
        if reason:
            message += f" - {reason}"
        self.log(
            logging.INFO if success else logging.WARNING,
            message,
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "user_email": user_email,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_payment_event(self, event: str, bill_id: str, success: bool = True,
                          amount: Optional[float] = None, reason: Optional[str] = None,
                          **kwargs) -> None:
        message = f"Payment {event} for bill {bill_id}: {'ok' if success else 'failed'}"
        if reason:
            message += f" - {reason}"
        self.log(
            logging.INFO if success else logging.WARNING,
            message,
            extra={
                "event_type": "payment",
                "payment_event": event,
                "bill_id": bill_id,
                "payment_success": success,
                "amount": amount,
                "failure_reason": reason,
                **kwargs
            }
        )


def _rotating_file_handler(formatter: logging.Formatter, backup_count: int) -> RotatingFileHandler:
    log_file = Path(settings.LOG_FILE)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=backup_count)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> SocietyLogger:
    """Configure the "societypro" logger for the current environment"""
    logging.setLoggerClass(SocietyLogger)
    logger = logging.getLogger("societypro")
    logger.__class__ = SocietyLogger  # in case it was created before setLoggerClass
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.propagate = False
    logger.handlers.clear()

    json_logging = settings.is_production()
    if json_logging:
        console_formatter = file_formatter = JSONFormatter()
        backups = 10
    else:
        console_formatter = ContextualFormatter("%(levelname)-8s | %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | [%(request_id)s] [%(user_id)s] | "
            "%(funcName)s:%(lineno)d | %(message)s"
        )
        backups = 5

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(console_formatter)
    logger.addHandler(console)

    if settings.LOG_FILE:
        logger.addHandler(_rotating_file_handler(file_formatter, backups))

    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info(
        "Logging initialized",
        extra={"environment": settings.ENVIRONMENT, "log_level": settings.LOG_LEVEL, "json_logging": json_logging}
    )
    return logger


logger: SocietyLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'get_request_id',
    'set_request_id',
    'get_user_id',
    'set_user_id',
    'generate_request_id',
    'SocietyLogger',
    'JSONFormatter',
]
