r"""
Error classification for the masking stage.

Two steps, kept apart on purpose:

1. `capture_failure(exc)` runs once, at the pipeline boundary, and turns whatever
   was raised into a tagged variant:

       StructuredHttpError(status_code, body)   # raised as an HttpError
       OpaqueFailure(message, stack, exc_type)  # anything else

   This is the only place that looks at the exception's type. Everything after it
   branches on the `kind` tag, so there is exactly one definition of what counts
   as a "recognized" HTTP error.

2. `classify(failure)` maps the variant to an `ErrorDisposition`:

   | Failure                               | Disposition      |
   | ------------------------------------- | ---------------- |
   | OpaqueFailure                         | OPAQUE_RETHROW   |
   | status 401 / 403 / 404                | PASSTHROUGH      |
   | status 500-599                        | PASSTHROUGH      |
   | any other status 400-499              | MASK             |
   | status outside 400-599                | OPAQUE_RETHROW   |

   The client-error policy is an allow-list: only the three statuses client code
   branches on (login redirect, permission-denied view, not-found view) pass. Every
   other 4xx, including ones nobody has raised yet, is masked.

   5xx errors pass through because nothing upstream attaches `details` to them.
   That is a contract of the route handlers, not something checked here; see the
   STRIP_PASSTHROUGH_DETAILS setting for the hardened variant.

`classify` and `classify_status` are pure and total: no state, no exceptions.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Union

from .base import HttpError


class ErrorDisposition(str, Enum):
    PASSTHROUGH = "passthrough"
    MASK = "mask"
    OPAQUE_RETHROW = "opaque_rethrow"


class ErrorCategory(str, Enum):
    """Operator-facing taxonomy, recorded with every diagnostic record."""

    CLIENT_RECOVERABLE = "client_recoverable"   # 401 / 403 / 404
    SENSITIVE_CLIENT = "sensitive_client"       # every other 4xx
    SERVER = "server"                           # 5xx
    UNCLASSIFIED = "unclassified"               # not an HttpError, or out-of-range status


PASSTHROUGH_STATUS_CODES = frozenset({401, 403, 404})


# =================================================================================================================
# Failure variants
# =================================================================================================================

@dataclass(frozen=True)
class StructuredHttpError:
    """An error raised through the HttpError path: status plus the body it would render."""

    status_code: int
    body: dict[str, Any]
    kind: Literal["structured"] = field(default="structured", init=False)


@dataclass(frozen=True)
class OpaqueFailure:
    """Anything else. Only its message, type name and stack are known."""

    message: str
    stack: str
    exc_type: str
    kind: Literal["opaque"] = field(default="opaque", init=False)


Failure = Union[StructuredHttpError, OpaqueFailure]


def capture_failure(exc: BaseException) -> Failure:
    if isinstance(exc, HttpError):
        return StructuredHttpError(status_code=exc.status_code, body=exc.to_payload())
    return OpaqueFailure(
        message=str(exc),
        stack="".join(traceback.format_exception(exc)),
        exc_type=type(exc).__qualname__,
    )


# =================================================================================================================
# Classifiers
# =================================================================================================================

def classify_status(status_code: int) -> ErrorDisposition:
    if status_code in PASSTHROUGH_STATUS_CODES:
        return ErrorDisposition.PASSTHROUGH
    if 500 <= status_code <= 599:
        return ErrorDisposition.PASSTHROUGH
    if 400 <= status_code <= 499:
        return ErrorDisposition.MASK
    return ErrorDisposition.OPAQUE_RETHROW


def classify(failure: Failure) -> ErrorDisposition:
    if failure.kind == "structured":
        return classify_status(failure.status_code)
    return ErrorDisposition.OPAQUE_RETHROW


def categorize(failure: Failure) -> ErrorCategory:
    if failure.kind != "structured":
        return ErrorCategory.UNCLASSIFIED
    status = failure.status_code
    if status in PASSTHROUGH_STATUS_CODES:
        return ErrorCategory.CLIENT_RECOVERABLE
    if 400 <= status <= 499:
        return ErrorCategory.SENSITIVE_CLIENT
    if 500 <= status <= 599:
        return ErrorCategory.SERVER
    return ErrorCategory.UNCLASSIFIED
