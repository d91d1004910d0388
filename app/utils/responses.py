"""Standard response envelope helpers for the v1 API."""

from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import Request

from app.schemas.common import ApiResponse, ErrorResponse, ResponseMeta

# Set per request by the HTTP middleware
current_request_id: ContextVar[Optional[str]] = ContextVar("current_request_id", default=None)


def resolve_request_id(request: Optional[Request] = None) -> str:
    if request is not None and hasattr(request.state, "request_id"):
        return request.state.request_id
    return current_request_id.get() or str(uuid4())


def to_payload(data: Any) -> Dict[str, Any]:
    """Normalize route results into the ``data`` object of the envelope.

    Pydantic models are dumped, lists are wrapped as ``{"items": [...]}`` and
    scalars as ``{"value": ...}``.
    """
    if data is None:
        return {}
    if isinstance(data, dict):
        return data
    if hasattr(data, "model_dump"):
        return data.model_dump(mode="json")
    if isinstance(data, list):
        return {"items": [to_payload(item) if hasattr(item, "model_dump") else item for item in data]}
    return {"value": data}


def create_api_response(
    data: Any,
    message: str = "Operation successful",
    status: bool = True,
    request: Optional[Request] = None,
    api_version: str = "v1"
) -> Dict[str, Any]:
    """Create a standardized API response as a dictionary.

    Returns a dict to be compatible with FastAPI's response_model=dict.
    """
    meta = ResponseMeta(
        timestamp=datetime.now(timezone.utc),
        request_id=resolve_request_id(request),
        api_version=api_version,
    )
    response = ApiResponse(status=status, message=message, data=to_payload(data), meta=meta)
    return response.model_dump(mode="json")


def create_error_detail(error: str, message: str, detail: Optional[str] = None) -> Dict[str, Any]:
    """Create the ``detail`` payload of an HTTPException."""
    return ErrorResponse(error=error, message=message, detail=detail).model_dump()
