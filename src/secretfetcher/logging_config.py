"""Central logging configuration for secretfetcher."""
from __future__ import annotations

import json
import logging
import os
import re
import sys
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable


_CONFIG_LOCK = threading.Lock()
_CONFIGURED = False
_CORRELATION_ID = os.getenv("SECRETFETCHER_CORR_ID") or str(uuid.uuid4())

_SENSITIVE_KEYS = {"token", "secret", "password", "key", "authorization"}
_SENSITIVE_PATTERNS = tuple(value.lower() for value in _SENSITIVE_KEYS)
_REDACTED = "***REDACTED***"
# Query parameters and assignments whose name mentions a sensitive word.
_SENSITIVE_ASSIGNMENT = re.compile(
    r"\b([\w.-]*(?:" + "|".join(_SENSITIVE_PATTERNS) + r")[\w.-]*=)[^&\s'\"]+",
    re.IGNORECASE,
)

# LogRecord attributes that never belong in the JSON payload.
_RESERVED_ATTRS = {
    "args",
    "msg",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
}
_UNREDACTED_ATTRS = _RESERVED_ATTRS | {"name", "correlation_id"}


def get_correlation_id() -> str:
    """Return the run-scoped correlation identifier."""

    return _CORRELATION_ID


class _CorrelationIdFilter(logging.Filter):
    """Inject the correlation identifier into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        if not getattr(record, "correlation_id", None):
            record.correlation_id = _CORRELATION_ID
        return True


def _contains_secret(value: str) -> bool:
    lowered = value.lower()
    return any(token in lowered for token in _SENSITIVE_PATTERNS)


def _mask_assignments(value: str) -> str:
    """Mask the values of sensitive ``name=value`` pairs such as ``?secretId=...``."""

    return _SENSITIVE_ASSIGNMENT.sub(lambda match: match.group(1) + _REDACTED, value)


def _redact(value: Any) -> Any:
    if value is None:
        return value
    if isinstance(value, str):
        return _mask_assignments(value)
    if isinstance(value, dict):
        return {
            key: _REDACTED if isinstance(key, str) and _contains_secret(key) else _redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set)):
        container_type = type(value)
        return container_type(_redact(item) for item in value)
    return value


class _RedactionFilter(logging.Filter):
    """Mask secret material in record attributes and arguments."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        for key in list(record.__dict__.keys()):
            if key in _UNREDACTED_ATTRS:
                continue
            if any(token in key.lower() for token in _SENSITIVE_PATTERNS):
                record.__dict__[key] = _REDACTED
            else:
                record.__dict__[key] = _redact(record.__dict__[key])

        if isinstance(record.args, dict):
            record.args = {key: _redact(value) for key, value in record.args.items()}
        elif isinstance(record.args, Iterable) and not isinstance(record.args, str):
            record.args = tuple(_redact(value) for value in record.args)

        if isinstance(record.msg, str):
            record.msg = _mask_assignments(record.msg)
        return True


class _JsonFormatter(logging.Formatter):
    """Formatter that outputs structured JSON payloads."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", _CORRELATION_ID),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in payload:
                continue
            payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class _StructuredFormatter(logging.Formatter):
    """Plain-text structured formatter."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)sZ %(levelname)s %(name)s [corr=%(correlation_id)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: D401, N802
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return dt.strftime(self.datefmt or "%Y-%m-%dT%H:%M:%S")


def configure_logging(level_override: str | None = None) -> None:
    """Configure the global logging system if it has not been configured."""

    global _CONFIGURED

    with _CONFIG_LOCK:
        root = logging.getLogger()
        first_configuration = not _CONFIGURED
        if first_configuration:
            handler = logging.StreamHandler(stream=sys.stdout)
            use_json = os.getenv("SECRETFETCHER_LOG_JSON", "false").lower() == "true"
            handler.addFilter(_CorrelationIdFilter())
            handler.addFilter(_RedactionFilter())
            handler.setFormatter(_JsonFormatter() if use_json else _StructuredFormatter())
            root.handlers = [handler]
            _CONFIGURED = True

        level: int | None = None
        if level_override:
            level = getattr(logging, level_override.upper(), logging.INFO)
        elif first_configuration:
            env_level = os.getenv("SECRETFETCHER_LOG_LEVEL", "INFO").upper()
            level = getattr(logging, env_level, logging.INFO)

        if level is not None:
            root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger instance."""

    configure_logging()
    return logging.getLogger(name)


__all__ = ["get_logger", "configure_logging", "get_correlation_id"]
