"""
Logging setup for the probability service.

Production writes one JSON object per line; everything else writes a
compact console line. Both carry the request id set by the middleware
and the analysis fields passed through `extra=`:

    logger.info("Analysis done", extra={"probability": 62, "data_source": "combined"})
    # 09:30:12 INFO     [3f2a9c1d] backend.app.probability...: Analysis done data_source=combined probability=62
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict

from backend.app.core.config import settings

_request_context: ContextVar[Dict[str, Any]] = ContextVar(
    "request_context", default={}
)

# Analysis and request fields lifted from `extra=` onto the output line
_EXTRA_KEYS = (
    "lat", "lon", "target_date", "data_source", "probability",
    "generation", "duration_ms", "status_code", "endpoint",
)


def set_request_context(**kwargs: Any) -> None:
    """Replace the request-scoped context; call with no args to clear it."""
    _request_context.set(kwargs)


def get_request_context() -> Dict[str, Any]:
    return _request_context.get()


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: getattr(record, key) for key in _EXTRA_KEYS if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        ctx = get_request_context()
        if ctx:
            entry["request"] = ctx
        entry.update(_extras(record))
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = f"{type(record.exc_info[1]).__name__}: {record.exc_info[1]}"
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line human-readable output with trailing key=value extras."""

    def format(self, record: logging.LogRecord) -> str:
        request_id = get_request_context().get("request_id")
        prefix = f" [{request_id[:8]}]" if request_id else ""
        extras = " ".join(f"{k}={v}" for k, v in _extras(record).items())
        line = (
            f"{self.formatTime(record, '%H:%M:%S')} {record.levelname:8s}"
            f"{prefix} {record.name}: {record.getMessage()}"
        )
        if extras:
            line = f"{line} {extras}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging() -> None:
    """Install a single stdout handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if settings.is_production else ConsoleFormatter())
    root.addHandler(handler)

    # Per-request access lines come from RequestLoggingMiddleware
    for name in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
