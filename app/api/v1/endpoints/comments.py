"""Section comment routes."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.dependencies import get_comment_service, get_current_user_id
from app.api.v1.errors import to_http_exception
from app.core.exceptions import AppError
from app.schemas.sections import CommentCreateRequest, CommentRead, CommentUpdateRequest
from app.services.comment_service import CommentService
from app.utils.responses import create_api_response

router = APIRouter()


@router.get(
    "/{project_id}/comments",
    response_model=dict,
    summary="List section comments, newest first",
    operation_id="list_soa_comments",
)
async def list_comments(
    project_id: UUID,
    comment_service: Annotated[CommentService, Depends(get_comment_service)],
    section_key: Annotated[Optional[str], Query(description="Only comments on this section")] = None,
) -> dict:
    try:
        comments = await comment_service.execute(action="list", project_id=project_id, section_key=section_key)
    except AppError as e:
        raise to_http_exception(e, "Failed to list comments")

    items = [CommentRead.model_validate(comment) for comment in comments]
    return create_api_response(items, f"{len(items)} comment(s) retrieved")


@router.post(
    "/{project_id}/comments",
    status_code=status.HTTP_201_CREATED,
    response_model=dict,
    summary="Comment on a section",
    operation_id="add_soa_comment",
)
async def add_comment(
    project_id: UUID,
    request: CommentCreateRequest,
    comment_service: Annotated[CommentService, Depends(get_comment_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    try:
        comment = await comment_service.execute(
            action="add",
            project_id=project_id,
            section_key=request.section_key,
            body=request.body,
            author_id=user_id,
        )
    except AppError as e:
        raise to_http_exception(e, "Failed to add comment")

    return create_api_response(CommentRead.model_validate(comment), "Comment added")


@router.patch(
    "/{project_id}/comments/{comment_id}",
    response_model=dict,
    summary="Resolve, reopen or edit a comment",
    operation_id="update_soa_comment",
)
async def update_comment(
    project_id: UUID,
    comment_id: UUID,
    request: CommentUpdateRequest,
    comment_service: Annotated[CommentService, Depends(get_comment_service)],
) -> dict:
    try:
        comment = await comment_service.execute(
            action="update",
            project_id=project_id,
            comment_id=comment_id,
            status=request.status,
            body=request.body,
        )
    except AppError as e:
        raise to_http_exception(e, "Failed to update comment")

    return create_api_response(CommentRead.model_validate(comment), "Comment updated")
