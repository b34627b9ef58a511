# src/error_shield/core/diagnostics.py
"""
Server-side diagnostic records for every error the masking stage sees.

The client may get a masked body, but operators always get the original: one
`DiagnosticRecord` per caught error, written *before* the error is classified or
rewritten, with the full structured body (HttpError) or message + stack
(anything else).

The sink is injected, not looked up. The application creates one sink at startup
and closes it at shutdown (see `error_shield.main`); tests pass a recording sink
and inspect it.
"""

from __future__ import annotations

import logging
import sys
import traceback
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from starlette.requests import Request

from error_shield.core.logging.builder import DIAGNOSTICS_LOGGER_NAME
from error_shield.core.logging.filters import get_request_id
from error_shield.exceptions.classifier import Failure, categorize


@dataclass(frozen=True)
class DiagnosticRecord:
    occurred_at: str
    kind: str
    category: str
    status_code: int | None = None
    body: dict[str, Any] | None = None
    error_message: str | None = None
    stack: str | None = None
    exc_type: str | None = None
    method: str | None = None
    path: str | None = None
    request_id: str | None = None

    @classmethod
    def from_failure(
        cls,
        failure: Failure,
        *,
        method: str | None = None,
        path: str | None = None,
        request_id: str | None = None,
        now: datetime | None = None,
    ) -> "DiagnosticRecord":
        occurred_at = (now or datetime.now(timezone.utc)).isoformat()
        common = dict(
            occurred_at=occurred_at,
            kind=failure.kind,
            category=categorize(failure).value,
            method=method,
            path=path,
            request_id=request_id,
        )
        if failure.kind == "structured":
            return cls(status_code=failure.status_code, body=failure.body, **common)
        return cls(
            error_message=failure.message,
            stack=failure.stack,
            exc_type=failure.exc_type,
            **common,
        )

    def to_log_extra(self) -> dict[str, Any]:
        # `kind` alone is ambiguous next to the other record attributes
        extra = asdict(self)
        extra["diagnostic_kind"] = extra.pop("kind")
        return {k: v for k, v in extra.items() if v is not None}


class DiagnosticSink(Protocol):
    def write(self, record: DiagnosticRecord) -> None: ...

    def close(self) -> None: ...


class SinkClosedError(RuntimeError):
    pass


class LoggingDiagnosticSink:
    """
    Diagnostic sink backed by the `error_shield.diagnostics` logger.

    Records become one ERROR log line each, with every field as a structured extra
    (JsonFormatter renders them as top-level keys). With queue-backed logging the
    write is a non-blocking enqueue.
    """

    def __init__(self, target: logging.Logger | None = None):
        self._logger = target or logging.getLogger(DIAGNOSTICS_LOGGER_NAME)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, record: DiagnosticRecord) -> None:
        if self._closed:
            raise SinkClosedError("diagnostic sink is closed")
        self._logger.error("diagnostic.error_captured", extra=record.to_log_extra())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for handler in self._logger.handlers:
            handler.flush()


class DiagnosticLogger:
    """
    Build a DiagnosticRecord for a failure and hand it to the sink.

    A failing sink never fails the request: the write error is reported on stderr
    and the record is returned anyway. Errors while *building* the record are not
    caught.
    """

    def __init__(self, sink: DiagnosticSink):
        self.sink = sink

    def log(self, failure: Failure, request: Request | None = None) -> DiagnosticRecord:
        record = DiagnosticRecord.from_failure(
            failure,
            method=request.method if request is not None else None,
            path=request.url.path if request is not None else None,
            request_id=_request_id_of(request),
        )
        try:
            self.sink.write(record)
        except Exception:
            _report_sink_failure(record)
        return record


def _request_id_of(request: Request | None) -> str | None:
    if request is not None:
        rid = getattr(request.state, "request_id", None)
        if rid:
            return rid
    return get_request_id()


def _report_sink_failure(record: DiagnosticRecord) -> None:
    # Same contract as logging.Handler.handleError: report on stderr, never raise.
    if not logging.raiseExceptions:
        return
    try:
        sys.stderr.write(
            f"--- Diagnostic sink error (request_id={record.request_id}, status={record.status_code}) ---\n"
        )
        traceback.print_exc(file=sys.stderr)
    except OSError:
        pass
