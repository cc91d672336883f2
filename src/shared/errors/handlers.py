"""Exception handlers mapping errors to HTTP responses."""

import logging
from collections import defaultdict
from datetime import UTC, datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared.middlewares.request_id import get_request_id

from .exceptions import AppError, ErrorKind
from .schemas import ErrorResponse

logger = logging.getLogger(__name__)


def error_response(
    request: Request,
    status_code: int,
    message: str,
    errors: dict[str, list[str]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the standard JSON error body."""
    body = ErrorResponse(
        error=message,
        status_code=status_code,
        trace_id=get_request_id(request),
        timestamp=datetime.now(UTC),
        errors=errors,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain errors; internal detail goes to the log only."""
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        logger.warning(f"Authentication rejected ({exc.kind}) on {request.url.path}: {exc.detail}")
        headers = {"WWW-Authenticate": "Bearer"}
    elif exc.status_code == status.HTTP_403_FORBIDDEN:
        logger.warning(f"Authorization denied on {request.url.path}: {exc.detail}")
        headers = None
    else:
        logger.info(f"Request error ({exc.kind}) on {request.url.path}: {exc.detail}")
        headers = None

    return error_response(request, exc.status_code, exc.public_message, headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with messages grouped per field."""
    errors: dict[str, list[str]] = defaultdict(list)
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "request"
        errors[field].append(error.get("msg", "Invalid value"))

    logger.info(f"Validation failed on {request.url.path}: {dict(errors)}")
    return error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "Validation failed",
        errors=dict(errors),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (404 route, 405 method) in the standard body."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(request, exc.status_code, message, headers=getattr(exc, "headers", None))


async def rate_limit_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle rate limit exceeded errors."""
    logger.warning(f"Rate limit exceeded on {request.url.path}")
    return error_response(request, status.HTTP_429_TOO_MANY_REQUESTS, "Rate limit exceeded")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log everything, return nothing internal."""
    logger.error(f"Unhandled server error on {request.url.path}: {exc}", exc_info=exc)
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


__all__ = ["ErrorKind", "error_response", "register_exception_handlers"]
