"""
app/core/logging.py

Purpose: Logging configuration

- JSON lines in production, coloured single lines in development
- Request-scoped context (uid, stripe_id, event_type, device_id) carried
  in a ContextVar so concurrent requests never see each other's fields
- Stripe secrets, client secrets and bearer tokens are masked before output
"""

import contextvars
import logging
import re
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict

from app.core.config import settings


CONTEXT_FIELDS = ("uid", "stripe_id", "event_type", "device_id")

_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar("log_context", default={})

_SECRET_PATTERNS = (
    re.compile(r"\b(sk|rk)_(test|live)_[A-Za-z0-9]+"),
    re.compile(r"\bwhsec_[A-Za-z0-9]+"),
    re.compile(r"\b(pi|seti)_[A-Za-z0-9]+_secret_[A-Za-z0-9]+"),
    re.compile(r"Bearer\s+[A-Za-z0-9\-_.]+"),
)


def redact(text: str) -> str:
    """Masks API keys, webhook secrets, client secrets and bearer tokens."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub("[REDACTED]", text)
    return text


def _context_items(record: logging.LogRecord):
    for field in CONTEXT_FIELDS:
        value = getattr(record, field, None)
        if value is not None:
            yield field, value


class ContextFilter(logging.Filter):
    """
    Copies the active LogContext onto each record. Values passed through
    `extra=` win over the context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line for log shipping.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "environment": settings.ENVIRONMENT,
            "logger": record.name,
            "message": redact(record.getMessage()),
            "module": record.module,
            "line": record.lineno,
        }
        log_data.update(_context_items(record))

        if record.exc_info:
            log_data["exception"] = redact(self.formatException(record.exc_info))

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable formatter for development environment.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        name = record.name.replace("alventura.", "", 1)

        line = f"{color}{timestamp} {record.levelname[0]}{self.RESET} {name}: {redact(record.getMessage())}"

        context = " ".join(f"{key}={value}" for key, value in _context_items(record))
        if context:
            line += f"  ({context})"

        if record.exc_info:
            line += "\n" + redact(self.formatException(record.exc_info))

        return line


def setup_logging():
    """
    Installs a single stdout handler on the root logger.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(StructuredFormatter() if settings.is_production else DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # httpx and stripe log every request at INFO
    for noisy in ("httpx", "httpcore", "stripe", "motor", "pymongo", "firebase_admin", "google.auth", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger("alventura")
    logger.debug(f"Logging configured (environment={settings.ENVIRONMENT}, level={settings.LOG_LEVEL})")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the "alventura." namespace."""
    return logging.getLogger(f"alventura.{name}")


class LogContext:
    """
    Adds fields to every record logged inside the block, including records
    from awaited calls. Nested blocks extend the outer context.

    Usage:
        with LogContext(uid="abc123", event_type="invoice.paid"):
            logger.info("Recording invoice")
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._token = None

    def __enter__(self):
        self._token = _context.set({**_context.get(), **self.context})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _context.reset(self._token)
