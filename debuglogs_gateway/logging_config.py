"""Structured logging for the gateway.

Records carry the context of the request being served (``request_id``,
``origin``, ``method``, ``path``), set by the Flask hooks below. Audit events
from the ``audit`` logger add ``event`` and their own fields (``reason``,
``platform``, ...), which both formatters render.

Usage:
    from debuglogs_gateway.logging_config import setup_logging

    setup_logging(config)
    # {"timestamp": "...", "level": "INFO", "logger": "audit",
    #  "message": "logs_denied", "request_id": "3f2a...", "path": "/android/abc",
    #  "event": "logs_denied", "reason": "malformed_key", ...}
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from flask import g, request

from debuglogs_gateway.config import GatewayConfig

_context: ContextVar[dict] = ContextVar("log_context", default={})

# Attributes of every LogRecord; anything else arrived through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

# Fields appended to text lines as key=value, in this order
TEXT_FIELDS = ("reason", "platform", "versioned", "upstream_status", "status_code", "duration_ms")


def set_context(**fields: Any) -> None:
    """Add fields to the logging context of the current request.

    ``None`` values are skipped, so an absent header never shows up as null.
    """
    current = _context.get()
    _context.set({**current, **{k: v for k, v in fields.items() if v is not None}})


def get_context() -> dict[str, Any]:
    return dict(_context.get())


def clear_context() -> None:
    _context.set({})


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record: level, logger, message, request context,
    source location and every ``extra=`` field."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **get_context(),
            "location": f"{record.filename}:{record.lineno}:{record.funcName}",
            **_extra_fields(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Single-line output for running the gateway locally.

    2024-01-15T10:30:00.123456Z INFO [audit] [3f2a...] logs_denied reason=malformed_key
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = [_timestamp(record), record.levelname, f"[{record.name}]"]

        request_id = get_context().get("request_id")
        if request_id:
            parts.append(f"[{request_id}]")

        parts.append(record.getMessage())

        extra = _extra_fields(record)
        parts.extend(f"{name}={extra[name]}" for name in TEXT_FIELDS if name in extra)

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(config: GatewayConfig | None = None) -> None:
    """Send all logs to stderr with the level and format from ``config``.

    Replaces any handlers already on the root logger.
    """
    config = config or GatewayConfig()

    handler = logging.StreamHandler(sys.stderr)
    if config.log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(config.log_level)


def flask_request_middleware(app) -> None:
    """Log one ``request_complete`` record per request, with status and timing.

    The request id is taken from ``X-Request-ID`` when a fronting proxy sets
    one. It stays in the logs and is never added to responses.
    """
    logger = logging.getLogger("http")

    @app.before_request
    def start_request_context():
        set_context(
            request_id=request.headers.get("X-Request-ID") or uuid.uuid4().hex,
            origin=request.headers.get("Origin"),
            method=request.method,
            path=request.path,
        )
        g.request_start_time = time.perf_counter()

    @app.after_request
    def log_request(response):
        start = g.get("request_start_time")
        duration_ms = round((time.perf_counter() - start) * 1000, 2) if start is not None else None
        logger.info(
            f"{request.method} {request.path} -> {response.status_code}",
            extra={
                "event": "request_complete",
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response

    @app.teardown_request
    def clear_request_context(exception=None):
        clear_context()
