"""
Domain exceptions and the FastAPI handlers that render them as JSON.

Every failure response carries an ``error`` field and, where useful,
``detail`` and ``code``.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class MoodStreamError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        detail: Optional[Any] = None,
        code: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.detail = detail
        self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        if self.code is not None:
            body["code"] = self.code
        return body


class ValidationError(MoodStreamError):
    """A required field is missing or empty."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthorized(MoodStreamError):
    """No local identity could be resolved for the request."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(MoodStreamError):
    """The resolved identity does not own the target resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class UpstreamUnavailable(MoodStreamError):
    """The identity provider or object store call failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service unavailable"


class PersistenceError(MoodStreamError):
    """A datastore write failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Database write failed"

    @classmethod
    def from_exception(cls, message: str, exc: SQLAlchemyError) -> "PersistenceError":
        orig = getattr(exc, "orig", None)
        code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        return cls(message, detail=str(orig or exc), code=code)


class DuplicateIdentity(MoodStreamError):
    """Concurrent first-time creation of the same user row."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Identity already exists"


async def moodstream_error_handler(request: Request, exc: MoodStreamError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.detail})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "detail": jsonable_errors(exc)},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"{request.method} {request.url.path} database error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Database error", "detail": str(exc)},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} unhandled error: {exc!r}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Reduce pydantic error entries to their location and message."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MoodStreamError, moodstream_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
