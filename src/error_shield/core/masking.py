# src/error_shield/core/masking.py
"""
Error-masking stage.

Per request, once, terminal on the first emission:

    RUNNING ──success──▶ SUCCEEDED                      (response unchanged)
       │
       └─raise──▶ ERROR_CAUGHT ─▶ LOGGED ─▶ CLASSIFIED ─┬─▶ FORWARDING  (PASSTHROUGH: original body/status)
                                                        ├─▶ FORWARDING  (OPAQUE_RETHROW: original exception re-raised)
                                                        └─▶ MASKING     (MASK: fresh MaskedError, status 500)

`ErrorMasker` holds the decision logic and is framework-agnostic apart from the
response it renders; `ErrorMaskingMiddleware` plugs it into the Starlette chain.

Failures inside the diagnostic logger (other than the sink write, which it handles
itself) or the classifier are not caught here. They surface as an unhandled error
of the pipeline rather than letting an unverified error reach the client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi.encoders import jsonable_encoder
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from error_shield.core.diagnostics import DiagnosticLogger, DiagnosticRecord
from error_shield.exceptions.base import MaskedError
from error_shield.exceptions.classifier import (
    ErrorDisposition,
    capture_failure,
    classify,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaskingOutcome:
    """What the masking stage decided for one caught error."""

    disposition: ErrorDisposition
    record: DiagnosticRecord
    status_code: int | None = None
    body: dict[str, Any] | None = None

    @property
    def rethrow(self) -> bool:
        return self.disposition is ErrorDisposition.OPAQUE_RETHROW

    def to_response(self) -> JSONResponse:
        if self.rethrow or self.status_code is None or self.body is None:
            raise ValueError("an opaque failure has no response; re-raise the original error")
        # details may hold values json cannot encode as-is (datetime, Decimal)
        return JSONResponse(status_code=self.status_code, content=jsonable_encoder(self.body))


class ErrorMasker:
    """
    Log, classify and (when required) replace one caught error.

    Args:
        diagnostics: receives the unredacted original before anything else happens.
        strip_passthrough_details: drop `details` from errors that pass through.
            Off by default: passthrough bodies are forwarded exactly as raised.
    """

    def __init__(self, diagnostics: DiagnosticLogger, *, strip_passthrough_details: bool = False):
        self.diagnostics = diagnostics
        self.strip_passthrough_details = strip_passthrough_details

    def handle(self, exc: Exception, request: Request | None = None) -> MaskingOutcome:
        failure = capture_failure(exc)
        record = self.diagnostics.log(failure, request)
        disposition = classify(failure)

        if disposition is ErrorDisposition.MASK:
            masked = MaskedError()
            logger.info(
                "masking.masked",
                extra={"original_status": failure.status_code, "status_code": masked.status_code},
            )
            return MaskingOutcome(
                disposition=disposition,
                record=record,
                status_code=masked.status_code,
                body=masked.to_payload(),
            )

        if disposition is ErrorDisposition.PASSTHROUGH:
            body = dict(failure.body)
            if self.strip_passthrough_details:
                body.pop("details", None)
            logger.info("masking.passthrough", extra={"status_code": failure.status_code})
            return MaskingOutcome(
                disposition=disposition,
                record=record,
                status_code=failure.status_code,
                body=body,
            )

        logger.info("masking.opaque_rethrow", extra={"diagnostic_kind": failure.kind})
        return MaskingOutcome(disposition=disposition, record=record)


class ErrorMaskingMiddleware(BaseHTTPMiddleware):
    """
    Starlette middleware wrapping the route handlers with an ErrorMasker.

    Register it innermost among the application middleware so every error the
    handlers raise reaches it (see `error_shield.main.create_app`).
    """

    def __init__(self, app: ASGIApp, masker: ErrorMasker):
        super().__init__(app)
        self.masker = masker

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            outcome = self.masker.handle(exc, request)
            if outcome.rethrow:
                raise
            return outcome.to_response()
