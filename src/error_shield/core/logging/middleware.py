# src/error_shield/core/logging/middleware.py
"""
Logging middleware for FastAPI / Starlette.

Three independent stages, each a plain `BaseHTTPMiddleware`:

  - RequestIDMiddleware: associates every request with a request id (incoming
    `X-Request-ID` when it looks sane, otherwise a fresh UUID4), stores it in the
    contextvar read by RequestIdFilter, and echoes it in the response header.

  - RequestLoggingMiddleware: logs method, path and arrival time before the
    handler runs.

  - ResponseLoggingMiddleware: logs status code, elapsed time and response size
    once the downstream chain has produced a response (or raised).

The two observability stages only read the request/response. They never replace
the response or swallow an exception, so adding or removing them cannot change
what the client receives. Register them outside the error-masking stage so they
see the status the client actually gets:

    app.add_middleware(ErrorMaskingMiddleware, masker=...)
    app.add_middleware(ResponseLoggingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

(Starlette wraps in reverse order: the last middleware added is the outermost.)
"""

import logging
import re
import time
import uuid
from datetime import datetime, timezone

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .filters import set_request_id, reset_request_id

REQUEST_ID_HEADER = "X-Request-ID"

# Accept upstream ids that are short and made of safe characters; anything else
# (newlines, very long values) is replaced to keep it out of the logs.
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

request_logger = logging.getLogger("error_shield.request")
response_logger = logging.getLogger("error_shield.response")


def _resolve_request_id(incoming: str | None) -> str:
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Starlette / FastAPI middleware that sets a request id for each incoming request.

    The id is also stored on `request.state.request_id` for code that has the
    request at hand (the masking layer puts it in diagnostic records).
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = _resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = rid

        token = set_request_id(rid)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            reset_request_id(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request before it reaches the handler."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_logger.info(
            "request.received",
            extra={
                "method": request.method,
                "path": request.url.path,
                "received_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        return await call_next(request)


class ResponseLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log status code, latency and size of every response.

    If the downstream chain raises (an error the masking stage forwards opaquely),
    the record is still written with status 500 and `ok=False`, then the exception
    continues upward untouched.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        t0 = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            elapsed_ms = (time.perf_counter() - t0) * 1000.0
            content_length = response.headers.get("content-length") if response is not None else None
            response_logger.info(
                "response.sent",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code if response is not None else 500,
                    "elapsed_ms": round(elapsed_ms, 2),
                    "response_size": int(content_length) if content_length is not None else None,
                    "ok": response is not None,
                    "sent_at": datetime.now(timezone.utc).isoformat(),
                },
            )
