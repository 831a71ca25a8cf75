import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException


logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base for errors that map onto an HTTP status with an ``{"error": ...}`` body."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(AppError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Conflict"


class PersistenceFailure(AppError):
    status_code = 500
    default_message = "Database error"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class PartialFailure(AppError):
    """
    One item of a batch could not be assembled.

    Raised and caught inside a single handler; the item is dropped and the
    rest of the batch is returned. It should never reach a client.
    """

    status_code = 500
    default_message = "Partial failure"


def validation_message(error: ValidationError | RequestValidationError) -> str:
    """First validation problem as ``field: message``."""
    errors = error.errors()
    if not errors:
        return InvalidRequest.default_message

    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    message = first.get("msg", InvalidRequest.default_message)

    if location:
        return f"{'.'.join(location)}: {message}"
    return message


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"request_failed path={request.url.path} error={exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": validation_message(exc)})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"request_crashed path={request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=500, content={"error": AppError.default_message}
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
