from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class WorkflowStateResponse(BaseModel):
    """Response model for the persisted workflow state of a project."""

    project_id: str = Field(..., description="Project ID")
    project_status: str = Field(..., description="Project status")
    current_step: int = Field(..., description="Highest step that has left pending")
    step_statuses: Dict[str, str] = Field(..., description="Status per step, keyed step1..step6")
    step_outputs: Dict[str, Any] = Field(default_factory=dict, description="Recorded output per step")
    workflow_run_id: Optional[str] = Field(None, description="Handle of the active run")
    stuck: bool = Field(False, description="A step has been in progress longer than the stuck threshold")
    updated_at: Optional[datetime] = Field(None, description="Last state change")
    started: Optional[bool] = Field(None, description="Whether the call submitted a run")


class ApprovalResponse(BaseModel):
    """Response model for an approval decision."""

    step: int = Field(..., description="Decided step")
    next_step: Optional[int] = Field(None, description="Step the workflow moved to")
    project_status: str = Field(..., description="Project status after the decision")
    comments: Optional[str] = Field(None, description="Rejection comments")
    step_statuses: Dict[str, str] = Field(..., description="Status per step after the decision")
