"""Global exception handlers for FastAPI.

The single place where errors become HTTP responses. Status and code come
from the error itself (see auth.exceptions); nothing is inferred from
message text.
"""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.base import error_response, render, request_id_of, ErrorCodes
from auth.exceptions import AppError, RateLimitedError

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    400: ErrorCodes.VALIDATION_ERROR,
    401: ErrorCodes.NOT_AUTHENTICATED,
    403: ErrorCodes.FORBIDDEN,
    404: ErrorCodes.NOT_FOUND,
    405: ErrorCodes.METHOD_NOT_ALLOWED,
    409: ErrorCodes.ALREADY_EXISTS,
    429: ErrorCodes.RATE_LIMITED,
}


def app_error_response(request: Request, exc: AppError):
    """Render a typed application error."""
    record = exc.to_record()
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return render(
        error_response(record.code, record.message, record.details, request_id_of(request)),
        status_code=record.status_code,
        headers=headers,
    )


def register_error_handlers(app: FastAPI, production: bool = False) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
        return app_error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return render(
            error_response(ErrorCodes.VALIDATION_ERROR, "Validation failed", details, request_id_of(request)),
            status_code=400,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = _STATUS_CODES.get(exc.status_code, ErrorCodes.INTERNAL_ERROR)
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return render(
            error_response(code, message, request_id=request_id_of(request)),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        details = None
        if not production:
            details = {
                "type": type(exc).__name__,
                "stack": traceback.format_exception(type(exc), exc, exc.__traceback__),
            }
        return render(
            error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
                details,
                request_id_of(request),
            ),
            status_code=500,
        )
