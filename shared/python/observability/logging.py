"""
Structured logging for the courier bot.

Every record carries the service name and, while a poll cycle or command
runs, the fields bound through LogContext (folder_id, chat_id, trace_id...).
Fields passed with extra={} are merged on top.

Usage:
    from observability import setup_logging, get_logger, LogContext

    setup_logging(service_name="courier")
    logger = get_logger(__name__)

    with LogContext(trace_id="autofetch:reports/a", folder_id="reports/a"):
        logger.info("Polling folder")

JSON output (LOG_FORMAT=json, the default):
    {"timestamp": "2025-12-01T00:45:00.123456+00:00", "level": "INFO",
     "service": "courier", "logger": "courier.auto_fetch",
     "message": "Polling folder", "trace_id": "autofetch:reports/a",
     "folder_id": "reports/a"}

Console output (LOG_FORMAT=console):
    [INFO] courier/auto_fetch [autofetch:reports/a]: Polling folder {folder_id=reports/a}

Context lives in a ContextVar, so each folder's monitor task only ever sees
its own fields.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

# LogRecord attributes that are not user-supplied fields
_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName", "service"}

_NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "asyncio", "uvicorn.access")


def get_trace_id() -> Optional[str]:
    return _context.get().get("trace_id")


def set_trace_id(trace_id: Optional[str]) -> None:
    """Bind a trace id for the rest of the current task."""
    fields = dict(_context.get())
    if trace_id is None:
        fields.pop("trace_id", None)
    else:
        fields["trace_id"] = trace_id
    _context.set(fields)


def clear_trace_id() -> None:
    set_trace_id(None)


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Bound context first, then the record's own extra fields."""
    fields = dict(_context.get())
    fields.update(
        (key, value)
        for key, value in record.__dict__.items()
        if key not in _RESERVED and not key.startswith("_")
    )
    return fields


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for Loki and friends."""

    def __init__(self, service_name: str = "unknown"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_record_fields(record))

        if record.levelno >= logging.ERROR:
            entry["location"] = f"{record.pathname}:{record.lineno} in {record.funcName}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Readable single-line output for local runs.

    Format: [LEVEL] service/logger [trace]: message {field=value, ...}
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, service_name: str = "unknown", use_colors: bool = True):
        super().__init__()
        self.service_name = service_name
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        fields = _record_fields(record)
        trace_id = fields.pop("trace_id", None)

        level = record.levelname
        if self.use_colors:
            level = f"{self.COLORS.get(level, '')}{level}{self.RESET}"

        line = f"[{level}] {self.service_name}/{record.name.rsplit('.', 1)[-1]}"
        if trace_id:
            line += f" [{trace_id}]"
        line += f": {record.getMessage()}"
        if fields:
            line += " {" + ", ".join(f"{k}={v}" for k, v in fields.items()) + "}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    service_name: str,
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> None:
    """
    Configure the root logger for a service.

    Args:
        service_name: Name stamped on every record (e.g. "courier")
        level: Log level name. Defaults to LOG_LEVEL or INFO.
        json_format: JSON output unless LOG_FORMAT is "console".
    """
    level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level, logging.INFO)

    if json_format is None:
        json_format = os.environ.get("LOG_FORMAT", "json").lower() != "console"

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        JSONFormatter(service_name) if json_format else ConsoleFormatter(service_name)
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging initialized", extra={"log_level": level, "json_format": json_format}
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Bind fields to every record logged inside the block.

    Usage:
        with LogContext(trace_id=f"autofetch:{folder_id}", folder_id=folder_id):
            await self._poll(folder_id)
    """

    def __init__(self, trace_id: Optional[str] = None, **fields: Any):
        self.fields = dict(fields)
        if trace_id is not None:
            self.fields["trace_id"] = trace_id
        self._token = None

    def __enter__(self):
        self._token = _context.set({**_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _context.reset(self._token)
        return False
