"""Correlation id middleware.

Reads ``X-Request-ID`` from the incoming request (or generates one), binds it
to the structlog context for every log line of the request, stores it in
``request.state`` for error bodies, and echoes it on the response.
"""

import re
from collections.abc import Callable
from uuid import uuid4

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def get_request_id(request: Request) -> str:
    """Return the correlation id assigned to this request."""
    return getattr(request.state, "request_id", None) or "unknown"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware assigning a correlation id to every request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        request_id = incoming if incoming and _VALID_REQUEST_ID.match(incoming) else uuid4().hex

        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response: Response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
