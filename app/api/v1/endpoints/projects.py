"""Project and source document routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.v1.dependencies import get_current_user_id, get_project_service
from app.api.v1.errors import to_http_exception
from app.core.exceptions import AppError
from app.schemas.projects import (
    DocumentCreateRequest,
    DocumentRead,
    ProjectCreateRequest,
    ProjectRead,
    ProjectUpdateRequest,
)
from app.services.project_service import ProjectService
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=dict,
    summary="Create an SOA project",
    operation_id="create_soa_project",
)
async def create_project(
    request: ProjectCreateRequest,
    project_service: Annotated[ProjectService, Depends(get_project_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    try:
        project = await project_service.execute(
            action="create", name=request.name, client_name=request.client_name, owner_id=user_id
        )
    except AppError as e:
        raise to_http_exception(e, "Failed to create project")

    return create_api_response(ProjectRead.model_validate(project), "Project created")


@router.get(
    "",
    response_model=dict,
    summary="List the current user's SOA projects",
    operation_id="list_soa_projects",
)
async def list_projects(
    project_service: Annotated[ProjectService, Depends(get_project_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    try:
        projects = await project_service.execute(action="list", owner_id=user_id)
    except AppError as e:
        raise to_http_exception(e, "Failed to list projects")

    items = [ProjectRead.model_validate(project) for project in projects]
    return create_api_response(items, f"{len(items)} project(s) retrieved")


@router.get(
    "/{project_id}",
    response_model=dict,
    summary="Get an SOA project",
    operation_id="get_soa_project",
)
async def get_project(
    project_id: UUID,
    project_service: Annotated[ProjectService, Depends(get_project_service)],
) -> dict:
    try:
        project = await project_service.execute(action="get", project_id=project_id)
        documents = await project_service.list_documents(project_id)
    except AppError as e:
        raise to_http_exception(e, "Failed to get project")

    data = ProjectRead.model_validate(project).model_dump(mode="json")
    data["documents"] = [DocumentRead.from_document(doc).model_dump(mode="json") for doc in documents]
    return create_api_response(data, "Project retrieved")


@router.patch(
    "/{project_id}",
    response_model=dict,
    summary="Update an SOA project",
    operation_id="update_soa_project",
)
async def update_project(
    project_id: UUID,
    request: ProjectUpdateRequest,
    project_service: Annotated[ProjectService, Depends(get_project_service)],
) -> dict:
    try:
        project = await project_service.execute(
            action="update",
            project_id=project_id,
            name=request.name,
            client_name=request.client_name,
            status=request.status,
        )
    except AppError as e:
        raise to_http_exception(e, "Failed to update project")

    return create_api_response(ProjectRead.model_validate(project), "Project updated")


@router.delete(
    "/{project_id}",
    response_model=dict,
    summary="Delete an SOA project with its sections, versions and comments",
    operation_id="delete_soa_project",
)
async def delete_project(
    project_id: UUID,
    project_service: Annotated[ProjectService, Depends(get_project_service)],
) -> dict:
    try:
        await project_service.execute(action="delete", project_id=project_id)
    except AppError as e:
        raise to_http_exception(e, "Failed to delete project")

    return create_api_response({"project_id": str(project_id)}, "Project deleted")


@router.post(
    "/{project_id}/documents",
    status_code=status.HTTP_201_CREATED,
    response_model=dict,
    summary="Attach an extracted source document",
    description=(
        "Attaches a source document whose text has already been extracted. "
        "Documents without text are kept but ignored by content generation."
    ),
    operation_id="add_soa_source_document",
)
async def add_document(
    project_id: UUID,
    request: DocumentCreateRequest,
    project_service: Annotated[ProjectService, Depends(get_project_service)],
) -> dict:
    try:
        document = await project_service.execute(
            action="add_document",
            project_id=project_id,
            name=request.name,
            extracted_text=request.extracted_text,
            document_type=request.document_type,
        )
    except AppError as e:
        raise to_http_exception(e, "Failed to add source document")

    return create_api_response(DocumentRead.from_document(document), "Source document added")
