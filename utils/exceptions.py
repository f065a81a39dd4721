"""Typed API errors and the handlers that turn them into response envelopes.

Handlers never build error payloads themselves: they raise one of the errors below
and the exception handlers registered on the app convert it into
`{statusCode, success, message, errors}` with the matching status code.
"""

import logfire

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from schema.responses import ApiErrorResponse


class ApiError(Exception):
    """Base error carrying a status code and a client facing message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        errors: Optional[List[Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors or []
        self.headers = headers
        super().__init__(self.message)


class InvalidInput(ApiError):
    """Malformed or missing request fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthorized(ApiError):
    """Missing, invalid, expired or superseded credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class Forbidden(ApiError):
    """Authenticated but not entitled to the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class Internal(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ServiceUnavailable(ApiError):
    """A backing service (database, media store) could not be reached."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service unavailable. Please try again later."


def _error_response(
    status_code: int,
    message: str,
    errors: Optional[List[Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = ApiErrorResponse(status_code=status_code, message=message, errors=errors or [])
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
        headers=headers,
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logfire.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logfire.info(
            f"{request.method} {request.url.path} rejected with {exc.status_code}: {exc.message}"
        )
    return _error_response(exc.status_code, exc.message, exc.errors, exc.headers)


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    logfire.info(f"Validation failed for {request.method} {request.url.path}: {errors}")
    return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", errors)


async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    if isinstance(exc, DuplicateKeyError):
        logfire.warning(f"Duplicate key on {request.method} {request.url.path}: {exc}")
        return _error_response(status.HTTP_409_CONFLICT, Conflict.default_message)
    if isinstance(exc, ConnectionFailure):
        logfire.error(f"Database connection failure on {request.method} {request.url.path}: {exc}")
        return _error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE, ServiceUnavailable.default_message
        )
    logfire.error(f"Unexpected database error on {request.method} {request.url.path}: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected database error occurred"
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the single boundary that converts errors into envelopes."""
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)
