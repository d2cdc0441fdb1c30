"""Error Response Models

Client-facing error body shared by every error path of the API, plus the
request context that is logged alongside a classified error.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    """Current UTC time in ISO 8601 with a trailing Z."""
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


class PerformanceInfo(BaseModel):
    """Attached to an error body when the failing request was slow."""

    duration_ms: float
    slow: bool = True


class ErrorResponse(BaseModel):
    """Structured, user-safe error body.

    Serialized as ``{success, message, details, errorId, timestamp}``.
    ``details`` is left out of the body when it is not set.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    message: str
    details: Optional[Any] = None
    error_id: Optional[str] = Field(None, alias='errorId')
    timestamp: str = Field(default_factory=utc_timestamp)
    performance: Optional[PerformanceInfo] = None

    def to_body(self) -> dict:
        """Render the JSON body sent to the client."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RequestContext(BaseModel):
    """Request details logged with a classified error. Never sent to clients."""

    method: Optional[str] = None
    url: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    user_id: Optional[str] = None
    duration_ms: float = 0
