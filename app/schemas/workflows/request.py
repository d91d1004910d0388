from typing import Optional

from pydantic import BaseModel, Field


class ApprovalRequest(BaseModel):
    """Request model for approving a workflow step."""

    step: int = Field(..., ge=4, le=5, description="Approval step (4 or 5)")


class RejectionRequest(BaseModel):
    """Request model for rejecting a workflow step."""

    step: int = Field(..., ge=4, le=5, description="Approval step (4 or 5)")
    comments: Optional[str] = Field(None, description="Reviewer comments for the operator")
