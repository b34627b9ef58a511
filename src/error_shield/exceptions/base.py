"""
HTTP-level exceptions raised by route handlers.

Handlers reject a request by raising an `HttpError` (or one of the per-status
subclasses below). The error-masking stage is the only place these are turned
into responses: it decides whether the client sees the error as raised or a
generic `MaskedError` instead.
"""

from __future__ import annotations

import copy
from http import HTTPStatus
from typing import Any, Mapping

# Fixed client-facing text for every masked error. Must not be built from any
# value of the error being masked.
MASKED_ERROR_MESSAGE = "A server error occurred."
MASKED_ERROR_KIND = "Internal Server Error"


def _reason_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


class HttpError(Exception):
    """
    Base exception for errors that carry an HTTP status.

    - status_code: HTTP status (400-599 for everything the handlers raise)
    - message: human-readable message (may be sensitive, e.g. names a constraint)
    - error_kind: short label, the reason phrase by default ("Bad Request")
    - details: optional structured payload (validation rules, constraint names,
      business-rule parameters). Deep-copied at construction; for logs and
      passthrough responses only.

    Instances are read-only once constructed.
    """

    default_status_code: int = 500
    default_message: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        error_kind: str | None = None,
        details: Mapping[str, Any] | None = None,
    ):
        status = status_code if status_code is not None else self.default_status_code
        kind = error_kind or _reason_phrase(status)
        msg = message if message is not None else (self.default_message or kind)
        super().__init__(msg)
        self._status_code = status
        self._message = msg
        self._error_kind = kind
        self._details = copy.deepcopy(dict(details)) if details is not None else None

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def message(self) -> str:
        return self._message

    @property
    def error_kind(self) -> str:
        return self._error_kind

    @property
    def details(self) -> dict[str, Any] | None:
        # hand out a copy so callers cannot mutate the original
        return copy.deepcopy(self._details)

    def __str__(self) -> str:
        return f"{self._status_code} {self._error_kind}: {self._message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self._status_code!r}, message={self._message!r})"

    def to_payload(self) -> dict[str, Any]:
        """
        Return the JSON body sent to the client when this error passes through.

        Shape:
            {
                "statusCode": 409,
                "message": "User already exists",
                "error": "Conflict",
                "details": {...},   # only when details were given
            }
        """
        payload: dict[str, Any] = {
            "statusCode": self._status_code,
            "message": self._message,
            "error": self._error_kind,
        }
        if self._details is not None:
            payload["details"] = copy.deepcopy(self._details)
        return payload

    def http_status(self) -> int:
        return self._status_code


class BadRequestError(HttpError):
    default_status_code = 400


class UnauthorizedError(HttpError):
    default_status_code = 401


class ForbiddenError(HttpError):
    default_status_code = 403


class NotFoundError(HttpError):
    default_status_code = 404


class ConflictError(HttpError):
    default_status_code = 409


class UnprocessableEntityError(HttpError):
    default_status_code = 422


class InternalServerError(HttpError):
    default_status_code = 500


class ServiceUnavailableError(HttpError):
    default_status_code = 503


class MaskedError(InternalServerError):
    """
    The generic error sent in place of a masked one.

    Takes no arguments: every field is a constant, so nothing of the original
    error (message, details, status) can leak into it.
    """

    def __init__(self) -> None:
        super().__init__(MASKED_ERROR_MESSAGE, status_code=500, error_kind=MASKED_ERROR_KIND)


__all__ = [
    "MASKED_ERROR_MESSAGE",
    "MASKED_ERROR_KIND",
    "HttpError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "UnprocessableEntityError",
    "InternalServerError",
    "ServiceUnavailableError",
    "MaskedError",
]
