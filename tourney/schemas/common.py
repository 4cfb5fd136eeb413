"""Common schemas used across the API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str = Field(..., description="Error code (e.g., TOURNAMENT_FULL)")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict, description="Additional error details")


class ErrorResponse(BaseModel):
    """Standard error response format."""

    model_config = ConfigDict(populate_by_name=True)

    error: ErrorDetail
    trace_id: str | None = Field(None, alias="traceId", description="Request trace ID")

    @classmethod
    def build(
        cls,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        trace_id: str | None = None,
    ) -> dict[str, Any]:
        """Serialized envelope, keyed the way clients read it."""
        envelope = cls(
            error=ErrorDetail(code=code, message=message, details=details or {}),
            trace_id=trace_id,
        )
        return envelope.model_dump(by_alias=True)


# OpenAPI error documentation shared by every router
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid request or insufficient funds"},
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    403: {"model": ErrorResponse, "description": "Admin required or feature disabled"},
    404: {"model": ErrorResponse, "description": "Record not found"},
    409: {"model": ErrorResponse, "description": "State conflict"},
    503: {"model": ErrorResponse, "description": "Maintenance mode"},
}
