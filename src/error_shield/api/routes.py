# src/error_shield/api/routes.py
"""
Demo endpoints, one per error class the masking stage distinguishes.

The handlers raise errors the way real handlers would, details included; what
the client finally sees is decided by the masking middleware, not here.

    /api/error/400, /409, /422  -> masked to a generic 500
    /api/error/401, /403, /404  -> passed through as raised
    /api/error/500              -> passed through (no details on server errors)
    /api/error/unexpected       -> not an HttpError: re-raised untouched
"""

from fastapi import APIRouter

from error_shield.exceptions.base import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InternalServerError,
    NotFoundError,
    UnauthorizedError,
    UnprocessableEntityError,
)

router = APIRouter(prefix="/api", tags=["demo"])


@router.get("/success")
async def success():
    return {
        "message": "Request succeeded",
        "data": {"result": "OK"},
    }


# --- masked: the details describe validation rules, constraints, business rules ---

@router.get("/error/400")
async def bad_request():
    raise BadRequestError(
        "Validation failed",
        details={
            "validationErrors": ["email has an invalid format", "password is too short"],
            "userId": "12345",
            "internalRule": "password must be at least 8 characters and mix upper case, lower case and digits",
        },
    )


@router.get("/error/409")
async def conflict():
    raise ConflictError(
        "User already exists",
        details={
            "existingEmail": "user@example.com",
            "databaseConstraint": "unique_email_constraint",
        },
    )


@router.get("/error/422")
async def unprocessable_entity():
    raise UnprocessableEntityError(
        "Business rule violated",
        details={
            "reason": "minors cannot perform this operation",
            "age": 17,
            "requiredAge": 18,
        },
    )


# --- passed through: clients branch on these ---

@router.get("/error/401")
async def unauthorized():
    # client redirects to the login screen
    raise UnauthorizedError("Authentication required")


@router.get("/error/403")
async def forbidden():
    raise ForbiddenError("You do not have permission to perform this operation")


@router.get("/error/404")
async def not_found():
    raise NotFoundError("Resource not found")


@router.get("/error/500")
async def internal_error():
    raise InternalServerError("The server could not complete the request")


@router.get("/error/unexpected")
async def unexpected():
    raise RuntimeError("unexpected failure while building the response")
