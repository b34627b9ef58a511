# src/error_shield/core/logging/filters.py
"""
Logging filters.

Request ID filter and helpers for logging.

A per-request identifier (request_id) is kept in a `contextvars.ContextVar`, so it
follows the request across `await` boundaries and concurrent requests never see
each other's id. `RequestIdFilter` copies it onto every `LogRecord` so formatters
can reference `%(request_id)s` without a KeyError.

`RedactFilter` scrubs record attributes whose *name* looks like a credential
(`extra={"password": ...}`). It does not walk nested values: the diagnostic
records written by the masking layer carry the original error body on purpose,
and that body must reach the server-side sink unredacted.

Usage (dictConfig snippet, see builder.py):

    "filters": {
        "request_id": {"()": RequestIdFilter},
        "redact": {"()": RedactFilter},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "filters": ["request_id", "redact"], ...}
    }
"""

import logging
from logging import LogRecord
import contextvars

# Default is None to indicate "no request id set".
_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: str | None):
    """
    Set the request id in the current context and return the token to allow reset.

    Returns:
        token: contextvar.Token which can be passed to reset_request_id(token)
    """
    return _request_id_ctx.set(request_id)


def reset_request_id(token):
    """
    Reset the contextvar to the previously saved token returned by set_request_id().
    """
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    """
    Retrieve the current context's request id, or None if no id has been set.
    """
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Logging filter that guarantees every LogRecord has a `request_id` attribute.

    Precedence:
      * record.request_id (explicitly passed via `extra`)
      * the contextvar value (set by RequestIDMiddleware)
      * the sentinel "-"
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = (
            getattr(record, "request_id", None) or get_request_id() or "-"
        )
        # Annotation only; never drop the record.
        return True


class RedactFilter(logging.Filter):
    """Mask top-level record attributes whose name matches a known secret key."""

    SENSITIVE = {
        "password",
        "secret",
        "token",
        "access_token",
        "refresh_token",
        "api_key",
        "ssn",
        "authorization",
        "cookie",
    }
    REPLACEMENT = "***REDACTED***"

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = self.REPLACEMENT
        return True
