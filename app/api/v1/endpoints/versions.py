"""Version history routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.v1.dependencies import get_current_user_id, get_version_service
from app.api.v1.errors import to_http_exception
from app.core.exceptions import AppError
from app.schemas.common import ErrorResponse
from app.schemas.sections import RollbackRequest
from app.services.versioning.version_service import VersionService
from app.utils.responses import create_api_response

router = APIRouter()


@router.get(
    "/{project_id}/versions",
    response_model=dict,
    summary="List the version history of a project",
    operation_id="list_soa_versions",
)
async def get_history(
    project_id: UUID,
    version_service: Annotated[VersionService, Depends(get_version_service)],
) -> dict:
    try:
        history = await version_service.execute(action="history", project_id=project_id)
    except AppError as e:
        raise to_http_exception(e, "Failed to get version history")

    return create_api_response({"items": history}, f"{len(history)} version(s)")


@router.get(
    "/{project_id}/versions/compare",
    response_model=dict,
    responses={404: {"description": "Version not found", "model": ErrorResponse}},
    summary="Compare two versions",
    operation_id="compare_soa_versions",
)
async def compare_versions(
    project_id: UUID,
    version_service: Annotated[VersionService, Depends(get_version_service)],
    from_version: Annotated[int, Query(alias="from")],
    to_version: Annotated[int, Query(alias="to")],
) -> dict:
    try:
        result = await version_service.execute(
            action="compare", project_id=project_id, from_version=from_version, to_version=to_version
        )
    except AppError as e:
        raise to_http_exception(e, "Failed to compare versions")

    return create_api_response(result, f"{result['change_count']} change(s)")


@router.get(
    "/{project_id}/versions/{version}",
    response_model=dict,
    responses={404: {"description": "Version not found", "model": ErrorResponse}},
    summary="Get the sections as they were at a version",
    operation_id="get_soa_version_content",
)
async def get_content_at_version(
    project_id: UUID,
    version: int,
    version_service: Annotated[VersionService, Depends(get_version_service)],
) -> dict:
    try:
        sections = await version_service.execute(action="content_at", project_id=project_id, version=version)
    except AppError as e:
        raise to_http_exception(e, f"Failed to get content at version {version}")

    return create_api_response({"version": version, "sections": sections}, "Version content retrieved")


@router.post(
    "/{project_id}/versions/rollback",
    response_model=dict,
    responses={404: {"description": "Version not found", "model": ErrorResponse}},
    summary="Roll sections back to a version",
    description=(
        "Restores the content of every section that still exists to the target version "
        "and records the result as a new version. History is never rewritten."
    ),
    operation_id="rollback_soa_version",
)
async def rollback(
    project_id: UUID,
    request: RollbackRequest,
    version_service: Annotated[VersionService, Depends(get_version_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    try:
        result = await version_service.execute(
            action="rollback", project_id=project_id, version=request.version, author_id=user_id
        )
    except AppError as e:
        raise to_http_exception(e, f"Failed to roll back to version {request.version}")

    return create_api_response(result, f"Rolled back to version {request.version}")
