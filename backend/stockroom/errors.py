"""Domain error taxonomy and the handlers that turn errors into envelopes."""

from __future__ import annotations

import logging
import re
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INTERNAL_MESSAGE = "Internal server error"


class StockroomError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = INTERNAL_MESSAGE

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: Any = None,
        field: str | None = None,
    ):
        self.message = message or self.default_message
        if code:
            self.code = code
        self.details = details
        self.field = field
        super().__init__(self.message)


class ValidationFailed(StockroomError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request data"


class NotFoundError(StockroomError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Record not found"


class DuplicateEntryError(StockroomError):
    status_code = 409
    code = "DUPLICATE_ENTRY"
    default_message = "A record with this value already exists"


class InvalidReferenceError(StockroomError):
    status_code = 400
    code = "INVALID_REFERENCE"
    default_message = "Referenced record does not exist"


class ConflictError(StockroomError):
    status_code = 400
    code = "CONFLICT"
    default_message = "Operation conflicts with the current state"


class CorruptHierarchyError(StockroomError):
    status_code = 500
    code = "CORRUPT_HIERARCHY"
    default_message = "Location hierarchy is corrupt"


class InternalError(StockroomError):
    pass


def error_body(
    code: str,
    message: str,
    *,
    details: Any = None,
    field: str | None = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    if field is not None:
        error["field"] = field
    return {"success": False, "error": error}


def _error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(code, message, **extra))


_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?P<cols>[\w., ]+)")
_PG_KEY = re.compile(r"Key \((?P<cols>[^)]+)\)")


def classify_integrity_error(exc: IntegrityError) -> StockroomError:
    """Map a driver-level constraint violation onto the domain taxonomy."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    text = str(orig)

    if sqlstate == "23505" or "UNIQUE constraint" in text or "duplicate key" in text:
        field = None
        match = _SQLITE_UNIQUE.search(text) or _PG_KEY.search(text)
        if match:
            cols = [c.strip().split(".")[-1] for c in match.group("cols").split(",")]
            field = ", ".join(cols)
        return DuplicateEntryError(field=field)
    if sqlstate == "23503" or "FOREIGN KEY constraint" in text or "foreign key" in text:
        return InvalidReferenceError()
    return InvalidReferenceError(text.splitlines()[0] if text else None)


def _format_validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    details = []
    for err in exc.errors():
        # drop the "body"/"query"/"path" location prefix
        loc = [str(p) for p in err.get("loc", ())][1:]
        details.append({"path": ".".join(loc), "message": err.get("msg", "")})
    return details


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StockroomError)
    async def handle_domain_error(request: Request, exc: StockroomError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        message = INTERNAL_MESSAGE if isinstance(exc, InternalError) else exc.message
        return _error_response(
            exc.status_code, exc.code, message, details=exc.details, field=exc.field
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _error_response(
            400,
            ValidationFailed.code,
            ValidationFailed.default_message,
            details=_format_validation_errors(exc),
        )

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        error = classify_integrity_error(exc)
        logger.warning("Constraint violation on %s %s: %s", request.method, request.url.path, exc.orig)
        return _error_response(error.status_code, error.code, error.message, field=error.field)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))

    @app.exception_handler(RateLimitExceeded)
    async def handle_rate_limited(request: Request, exc: RateLimitExceeded):
        return _error_response(429, "RATE_LIMITED", "Too Many Requests")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, InternalError.code, INTERNAL_MESSAGE)
