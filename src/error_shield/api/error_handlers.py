# src/error_shield/api/error_handlers.py
"""
FastAPI exception handlers that route framework-raised HTTP errors through the
masking stage.

Starlette and FastAPI answer some errors on their own, inside the router, before
the error-masking middleware ever sees an exception:

    - HTTPException (unknown route -> 404, wrong method -> 405, ...)
    - RequestValidationError (body/query validation -> 422, with the full list of
      failing fields and constraints)

These handlers re-raise them as `HttpError` so they leave the router as
exceptions and get logged and classified like anything a route handler raises.
A 405 or a validation 422 is therefore masked; an unknown-route 404 passes.

How to use:
    register_exception_handlers(app)   # from the app factory
"""

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from error_shield.exceptions.base import HttpError, UnprocessableEntityError

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Convert a framework HTTPException into an HttpError.

    A string `detail` becomes the message; structured detail goes to `details`.
    """
    logger.debug("Framework HTTPException %s for %s %s", exc.status_code, request.method, request.url.path)
    if isinstance(exc.detail, str):
        raise HttpError(exc.detail, status_code=exc.status_code) from exc
    raise HttpError(
        status_code=exc.status_code,
        details={"detail": jsonable_encoder(exc.detail)},
    ) from exc


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """
    Convert request validation failures into a 422 HttpError carrying the errors.
    """
    logger.debug("RequestValidationError for %s %s", request.method, request.url.path)
    raise UnprocessableEntityError(
        "Request validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
    ) from exc


# Helper to register all handlers on an app (call this from your app factory)
def register_exception_handlers(app):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
