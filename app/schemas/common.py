from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ResponseMeta(BaseModel):
    """Metadata attached to every API response."""

    timestamp: datetime = Field(..., description="Response creation time (UTC)")
    request_id: str = Field(..., description="Request correlation ID")
    api_version: str = Field("v1", description="API version")


class ApiResponse(BaseModel):
    """Standard response envelope."""

    status: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable status message")
    data: Dict[str, Any] = Field(default_factory=dict, description="Response payload")
    meta: ResponseMeta


class ErrorResponse(BaseModel):
    """Standardized error response model."""

    error: str = Field(..., description="Error type/code")
    message: str = Field(..., description="Human-readable error message")
    detail: Optional[str] = Field(None, description="Additional error details")


class HealthCheckResponse(BaseModel):
    """Health check response payload."""

    status: str = Field(..., description="Overall service status")
    version: str = Field(..., description="Running application version")
    database: str = Field(..., description="Database connectivity status")
