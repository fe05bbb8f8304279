"""Logging setup for the storefront API.

Configures the standard library root logger once at startup:
- JSON or plain-text console output (LOG_FORMAT=json|text)
- Request context (request id, path) injected from a ContextVar
- Quieter defaults for SQLAlchemy and uvicorn access logs

Modules log through ``logging.getLogger(__name__)`` and never configure
handlers themselves.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from typing import Any

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "text").lower()
LOG_SQL = os.getenv("LOG_SQL", "false").lower() == "true"

# Populated by the request middleware, read by every log record.
request_context: ContextVar[dict[str, Any]] = ContextVar("request_context", default={})

_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}


# ---------------------------------------------------------------------------
# Filters & formatters
# ---------------------------------------------------------------------------

class RequestContextFilter(logging.Filter):
    """Copy the current request context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = request_context.get()
        record.request_id = ctx.get("request_id", "-")
        for key, value in ctx.items():
            if key != "request_id" and not hasattr(record, key):
                setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including ``extra=`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
                payload[key] = value
            except (TypeError, ValueError):
                payload[key] = str(value)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_configured = False


def configure_logging(
    level: str | None = None,
    fmt: str | None = None,
    module_levels: dict[str, str] | None = None,
) -> None:
    """Install the console handler on the root logger (idempotent)."""
    global _configured
    if _configured:
        return

    fmt = (fmt or LOG_FORMAT).lower()
    if fmt == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())

    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )

    levels = {
        "sqlalchemy.engine": "INFO" if LOG_SQL else "WARNING",
        "uvicorn.access": "WARNING",
        "httpx": "WARNING",
    }
    if module_levels:
        levels.update(module_levels)
    for name, value in levels.items():
        logging.getLogger(name).setLevel(getattr(logging, value.upper()))

    _configured = True
