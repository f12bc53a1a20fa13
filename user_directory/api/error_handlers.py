"""Error Handlers — global exception handlers for the user directory API.

Invariants:
    - UserDirectoryError → its own envelope (to_response), status from http_status
    - FieldValidationError names the offending parameter in error.details
    - RequestValidationError → 400 with one detail per bad user field; field paths drop
      the body/query/path prefix and render batch positions as [i]
    - Exception (catch-all) → never leaks internal details

Design Decisions:
    - 4xx logged at WARNING, 5xx at ERROR
    - Extracted from main.py (ADR: ExMA import fan-out < 10)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from user_directory.core.errors import (
    ErrorCategory, ErrorSeverity, FieldValidationError, UserDirectoryError,
)

logger = logging.getLogger(__name__)

_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    app.add_exception_handler(UserDirectoryError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)


async def domain_error_handler(request: Request, exc: UserDirectoryError):
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "user_id": exc.context.user_id,
        },
    )
    body = exc.to_response()
    if isinstance(exc, FieldValidationError):
        body["error"]["details"] = [{"field": exc.field, "message": exc.message}]
    return JSONResponse(status_code=exc.http_status, content=body)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": field_path(e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    fields = sorted({d["field"] for d in details})
    logger.warning(
        f"Rejected {request.method} {request.url.path}: invalid {', '.join(fields)}",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": f"Invalid value for {', '.join(fields)}",
                "category": ErrorCategory.VALIDATION.value,
                "severity": ErrorSeverity.ERROR.value,
                "details": details,
            },
        },
    )


async def generic_error_handler(request: Request, exc: Exception):
    """Catch-all — never leaks internal details."""
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        exc_info=True,
        extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": ErrorCategory.INTERNAL.value,
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )


def field_path(loc: tuple) -> str:
    """("body", 2, "cpf") -> "[2].cpf"; ("query", "size") -> "size"."""
    parts = list(loc)
    if parts and parts[0] in _LOCATIONS:
        parts = parts[1:]
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "request"
