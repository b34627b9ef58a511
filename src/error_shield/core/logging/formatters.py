# src/error_shield/core/logging/formatters.py

"""
Custom logging formatters for the application.

  - JsonFormatter: one JSON object per line, for log collectors. Every `extra`
    passed at the call site becomes a top-level key, which is how the
    diagnostic records of the masking layer (status code, original body,
    stack) end up queryable.

  - ColorFormatter: compact ANSI-colored lines for local development consoles.

The builder (dictConfig) selects one of them based on `LOG_FORMAT`.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any
from logging import LogRecord
from error_shield.utils.logging import get_project_version

PROJECT_VERSION = get_project_version()

# LogRecord attributes that are either rendered under another key or only
# meaningful to the logging machinery itself.
_SKIPPED_ATTRS = frozenset({"args", "msg", "levelname", "name", "exc_info", "exc_text", "stack_info"})


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Construction:
      - env: environment name (e.g., "development" | "production"); optional.
      - service: logical service name to include in logs.
      - datefmt: optional date format; when omitted the timestamp is ISO-8601 in UTC.

    Non-JSON-serializable extras are converted with `str()` so formatting never raises.
    """

    def __init__(self, *, env: str | None = None, service: str = "error-shield", datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service

    def formatTime(self, record: LogRecord, datefmt: str | None = None) -> str:
        if datefmt:
            return super().formatTime(record, datefmt)
        return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()

    def format(self, record: LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "request_id": getattr(record, "request_id", "-"),
            "service": self.service,
            "env": self.env,
            "version": PROJECT_VERSION,
        }

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)

        extras = {
            k: v
            for k, v in record.__dict__.items()
            if k not in log_record and not k.startswith("_") and k not in _SKIPPED_ATTRS
        }

        for k, v in extras.items():
            try:
                json.dumps(v, ensure_ascii=False)
                log_record[k] = v
            except (TypeError, ValueError):
                log_record[k] = str(v)

        # default=str covers nested values json.dumps above accepted at the top level only
        return json.dumps(log_record, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    Development-friendly colored formatter.

    Line shape: TIMESTAMP | LEVEL | LOGGER_NAME | REQUEST_ID | MESSAGE, with the
    traceback appended when exc_info is set. Only the level name is colored.
    """

    COLOR_CODES = {
        "DEBUG": "\033[1;36;47m",   # bold cyan on white
        "INFO": "\033[32m",         # green
        "WARNING": "\033[33m",      # yellow
        "ERROR": "\033[31m",        # red
        "CRITICAL": "\033[1;41m",   # bold on red
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: LogRecord) -> str:
        color = self.COLOR_CODES.get(record.levelname, "")
        # Reset right after the level so the color does not bleed into the rest of the line.
        reset = self.COLOR_CODES["RESET"]
        timestamp = self.formatTime(record, self.datefmt)

        base = (
            f"{timestamp} | {color}{record.levelname:<10}{reset} | "
            f"{record.name:<30} | "
            f"{getattr(record, 'request_id', '-'):<10} | "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            base = base + "\n" + self.formatException(record.exc_info)

        return base
