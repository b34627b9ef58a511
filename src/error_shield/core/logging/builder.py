# src/error_shield/core/logging/builder.py
"""
Logging builder: create and apply a dictConfig logging configuration and optionally
wire background QueueListeners to decouple log IO from request handling.

This module:
 - builds a dictConfig-compatible mapping from Settings
 - allows a queue-backed logging mode (LOG_USE_QUEUE) that moves actual writes to
   background threads (one QueueListener per logger that owns handlers) while
   producers only enqueue records
 - provides a NonBlockingQueueHandler that never blocks producers on a bounded
   queue (drop policy + drop counter)
 - stamps producer-side filters (RequestIdFilter, RedactFilter) on the QueueHandlers
   so contextvars and redaction run in the producing context (important for async)
 - exposes stop_queue_logging() to flush & stop the background listeners at shutdown.

Configuration knobs (on the Settings object):
 - LOG_USE_QUEUE: bool - enable queue-backed logging
 - LOG_QUEUE_MAX_SIZE: int - if > 0, use bounded queues of this size; 0 means unbounded.
 - LOG_QUEUE_BLOCKING: bool - if True and max_size > 0, producers block on a full queue;
   if False, NonBlockingQueueHandler drops records when full.
 - LOG_QUEUE_DROP_WARNING_THRESHOLD: int - report every N dropped records.
 - LOG_TO_STDOUT, LOG_DIR, LOG_FORMAT, LOG_LEVEL, ENV - standard settings.
"""

from __future__ import annotations

from pathlib import Path
import logging
import logging.config
import queue as _queue
import threading
from typing import Optional
from error_shield.utils.logging import get_project_name

from logging.handlers import QueueHandler, QueueListener

from .formatters import JsonFormatter, ColorFormatter
from .filters import RequestIdFilter, RedactFilter
from .handlers import (
    get_console_handler,
    get_file_handler,
    get_error_file_handler,
    get_error_console_handler,
    get_diagnostics_file_handler,
)

# Settings type (avoid calling get_settings() here to prevent import-time side effects)
from error_shield.config.settings import Settings

DIAGNOSTICS_LOGGER_NAME = "error_shield.diagnostics"

# (logger, queue handler, listener) for every queued logger, so shutdown can
# flush the listeners and hand the real handlers back to their loggers.
_QUEUE_LISTENERS: list[tuple[logging.Logger, QueueHandler, QueueListener]] = []

# Diagnostics for dropped logs (when using non-blocking/bounded queues)
_DROPPED_LOGS_COUNT = 0
_DROPPED_LOGS_LOCK = threading.Lock()


# -----------------------
# Helper: non-blocking queue handler
# -----------------------
class NonBlockingQueueHandler(QueueHandler):
    """
    QueueHandler variant that does not block producers when a bounded queue is full.

    Behavior:
      - If the queue has room, enqueues record as normal.
      - If the queue is full, the record is dropped and a module-level counter is
        incremented. Every `drop_warning_threshold` drops the loss is reported
        through `handleError` (stderr), outside the logging pipeline itself.
    """

    def __init__(self, q: _queue.Queue, drop_warning_threshold: int = 100):
        super().__init__(q)
        self.drop_warning_threshold = drop_warning_threshold

    def emit(self, record: logging.LogRecord) -> None:
        global _DROPPED_LOGS_COUNT
        try:
            self.queue.put_nowait(self.prepare(record))
        except _queue.Full:
            with _DROPPED_LOGS_LOCK:
                _DROPPED_LOGS_COUNT += 1
                dropped = _DROPPED_LOGS_COUNT

            if self.drop_warning_threshold > 0 and dropped % self.drop_warning_threshold == 0:
                self.handleError(record)
        except Exception:
            self.handleError(record)


def get_queue_stats() -> dict:
    """Return small diagnostics about queue usage."""
    with _DROPPED_LOGS_LOCK:
        return {
            "dropped_logs": _DROPPED_LOGS_COUNT,
            "queue_present": bool(_QUEUE_LISTENERS),
            "listeners": len(_QUEUE_LISTENERS),
        }


def _writes_files(settings: Settings) -> bool:
    return (not settings.LOG_TO_STDOUT) and bool(settings.LOG_DIR)


# -----------------------
# dictConfig builder
# -----------------------
def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping using the provided settings.

    The returned mapping includes:
      - formatters: "standard" (color/dev or normal) and "json"
      - filters: "request_id", "redact"
      - handlers: console, plus file/error_file/diagnostics_file when writing to
        LOG_DIR, or error_console when logging to stdout with LOG_LEVEL=CRITICAL
      - loggers: root, uvicorn.error, uvicorn.access, error_shield.diagnostics
    """
    formatters = {
        "standard": {
            # use ColorFormatter only in text mode
            "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s",
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": get_project_name() or settings.SERVICE_NAME,
        },
    }

    filters = {
        "request_id": {"()": RequestIdFilter},
        "redact": {"()": RedactFilter},
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}
    loggers: dict[str, dict] = {}

    if _writes_files(settings):
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)
        root_handlers = ["console", "file", "error_file"]
        handlers["diagnostics_file"] = get_diagnostics_file_handler(settings)
        # Diagnostic records go to their own file only, not duplicated in app/error logs.
        loggers[DIAGNOSTICS_LOGGER_NAME] = {
            "level": "ERROR",
            "handlers": ["diagnostics_file"],
            "propagate": False,
        }
    else:
        root_handlers = ["console"]
        # console already writes ERROR unless LOG_LEVEL is stricter; one copy per record
        if logging.getLevelName(settings.LOG_LEVEL) > logging.ERROR:
            handlers["error_console"] = get_error_console_handler(settings)
            root_handlers.append("error_console")
        loggers[DIAGNOSTICS_LOGGER_NAME] = {"level": "ERROR", "propagate": True}

    loggers.update({
        "": {
            "handlers": root_handlers,
            "level": settings.LOG_LEVEL,
            "propagate": True,
        },
        "uvicorn.error": {
            "level": settings.LOG_LEVEL,
            "handlers": root_handlers,
            "propagate": False,
        },
        "uvicorn.access": {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": False,
        },
    })

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": filters,
        "handlers": handlers,
        "loggers": loggers,
    }


def _queue_logger(
    logger_obj: logging.Logger, settings: Settings
) -> tuple[QueueHandler, QueueListener] | None:
    """
    Move the handlers of `logger_obj` behind a queue served by a background listener.

    Returns the installed queue handler and the started listener, or None when the
    logger has no handlers.
    """
    real_handlers = list(logger_obj.handlers)
    if not real_handlers:
        return None

    max_size = settings.LOG_QUEUE_MAX_SIZE or 0  # 0 means unbounded in queue.Queue()
    log_queue: _queue.Queue = _queue.Queue(max_size if max_size > 0 else 0)

    if max_size > 0 and not settings.LOG_QUEUE_BLOCKING:
        qh: QueueHandler = NonBlockingQueueHandler(
            log_queue, drop_warning_threshold=settings.LOG_QUEUE_DROP_WARNING_THRESHOLD
        )
    else:
        qh = QueueHandler(log_queue)

    # Producer-side filters: contextvars (request id) only exist in the producing context,
    # and secrets should be scrubbed before records sit in the queue.
    qh.addFilter(RequestIdFilter())
    qh.addFilter(RedactFilter())

    for h in real_handlers:
        logger_obj.removeHandler(h)
    logger_obj.addHandler(qh)

    listener = QueueListener(log_queue, *real_handlers, respect_handler_level=True)
    listener.start()
    return qh, listener


# --------------------------
# Entrypoint: setup & optional queue wiring
# --------------------------
def setup_logging(settings: Settings) -> None:
    """
    Initialize logging using settings and optionally switch to queue-backed logging.

    Steps:
      1. Stop listeners left over from a previous setup_logging() call.
      2. Ensure LOG_DIR exists when writing files.
      3. Apply dictConfig(make_dict_config(settings)).
      4. Register a RequestIdFilter on the root logger as a safety net (once).
      5. If settings.LOG_USE_QUEUE, put every configured logger that owns handlers
         behind its own queue + QueueListener.

    Safe to call more than once (tests and reloads do).
    """
    stop_queue_logging()

    if _writes_files(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    config = make_dict_config(settings)
    logging.config.dictConfig(config)

    root = logging.getLogger()
    if not any(isinstance(f, RequestIdFilter) for f in root.filters):
        root.addFilter(RequestIdFilter())

    if not getattr(settings, "LOG_USE_QUEUE", False):
        return

    for name in config["loggers"]:
        logger_obj = logging.getLogger(name)
        queued = _queue_logger(logger_obj, settings)
        if queued is not None:
            qh, listener = queued
            _QUEUE_LISTENERS.append((logger_obj, qh, listener))


def stop_queue_logging() -> None:
    """
    Flush and stop every QueueListener started by setup_logging().

    QueueListener.stop() drains what is already enqueued before joining its thread,
    so records accepted before shutdown still reach their handlers. The real handlers
    are then re-attached to their loggers, so anything logged after shutdown is
    written synchronously instead of piling up in a queue nobody serves.
    """
    while _QUEUE_LISTENERS:
        logger_obj, qh, listener = _QUEUE_LISTENERS.pop()
        try:
            listener.stop()
        except Exception:
            logging.getLogger(__name__).exception("Failed to stop QueueListener cleanly")
        finally:
            logger_obj.removeHandler(qh)
            for h in listener.handlers:
                logger_obj.addHandler(h)
