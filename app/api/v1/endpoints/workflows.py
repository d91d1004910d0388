"""Workflow control routes: start/resume, polling, approvals and reset."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.v1.dependencies import get_approval_service, get_current_user_id, get_workflow_service
from app.api.v1.errors import to_http_exception
from app.core.exceptions import AppError
from app.schemas.common import ErrorResponse
from app.schemas.workflows import (
    ApprovalRequest,
    ApprovalResponse,
    RejectionRequest,
    WorkflowStateResponse,
)
from app.services.approval_service import ApprovalService
from app.services.workflow_service import WorkflowService
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/{project_id}/workflow/start",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=dict,
    responses={
        404: {"description": "Project not found", "model": ErrorResponse},
        409: {"description": "No runner configured", "model": ErrorResponse},
    },
    summary="Start or resume the SOA workflow",
    description=(
        "Starts the workflow for a new project, resumes it at the first unfinished step, "
        "or re-triggers a failed step. Does nothing while a step is in progress or "
        "awaiting approval. Poll the state endpoint for progress."
    ),
    operation_id="start_soa_workflow",
)
async def start_workflow(
    project_id: UUID,
    workflow_service: Annotated[WorkflowService, Depends(get_workflow_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    try:
        state = await workflow_service.execute(action="start", project_id=project_id, user_id=user_id)
    except AppError as e:
        raise to_http_exception(e, "Failed to start workflow")

    LOGGER.info(
        "Workflow start handled",
        extra={"project_id": str(project_id), "user_id": user_id, "started": state.get("started")}
    )
    message = "Workflow started" if state.get("started") else "Workflow already running or finished"
    return create_api_response(WorkflowStateResponse(**state).model_dump(mode="json"), message)


@router.get(
    "/{project_id}/workflow",
    response_model=dict,
    summary="Get workflow state",
    operation_id="get_soa_workflow_state",
)
async def get_workflow_state(
    project_id: UUID,
    workflow_service: Annotated[WorkflowService, Depends(get_workflow_service)],
) -> dict:
    try:
        state = await workflow_service.execute(action="get_state", project_id=project_id)
    except AppError as e:
        raise to_http_exception(e, "Failed to get workflow state")

    return create_api_response(WorkflowStateResponse(**state).model_dump(mode="json"), "Workflow state retrieved")


@router.post(
    "/{project_id}/workflow/approve",
    response_model=dict,
    responses={409: {"description": "Step is not awaiting approval", "model": ErrorResponse}},
    summary="Approve an approval step",
    operation_id="approve_soa_workflow_step",
)
async def approve_step(
    project_id: UUID,
    request: ApprovalRequest,
    approval_service: Annotated[ApprovalService, Depends(get_approval_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    try:
        result = await approval_service.execute(
            action="approve", project_id=project_id, step=request.step, user_id=user_id
        )
    except AppError as e:
        raise to_http_exception(e, f"Failed to approve step {request.step}")

    return create_api_response(ApprovalResponse(**result), f"Step {request.step} approved")


@router.post(
    "/{project_id}/workflow/reject",
    response_model=dict,
    responses={409: {"description": "Step is not awaiting approval", "model": ErrorResponse}},
    summary="Reject an approval step",
    operation_id="reject_soa_workflow_step",
)
async def reject_step(
    project_id: UUID,
    request: RejectionRequest,
    approval_service: Annotated[ApprovalService, Depends(get_approval_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    try:
        result = await approval_service.execute(
            action="reject",
            project_id=project_id,
            step=request.step,
            comments=request.comments,
            user_id=user_id,
        )
    except AppError as e:
        raise to_http_exception(e, f"Failed to reject step {request.step}")

    return create_api_response(ApprovalResponse(**result), f"Step {request.step} rejected")


@router.post(
    "/{project_id}/workflow/reset",
    response_model=dict,
    responses={409: {"description": "Workflow is not stuck", "model": ErrorResponse}},
    summary="Reset a stuck workflow",
    description="Returns the in-progress current step to pending and detaches the active run.",
    operation_id="reset_soa_workflow",
)
async def reset_workflow(
    project_id: UUID,
    workflow_service: Annotated[WorkflowService, Depends(get_workflow_service)],
) -> dict:
    try:
        state = await workflow_service.execute(action="reset", project_id=project_id)
    except AppError as e:
        raise to_http_exception(e, "Failed to reset workflow")

    return create_api_response(WorkflowStateResponse(**state).model_dump(mode="json"), "Workflow reset")
