"""Error response schema."""

from datetime import datetime

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error body returned for every failed request."""

    error: str
    status_code: int
    trace_id: str
    timestamp: datetime
    errors: dict[str, list[str]] | None = None
