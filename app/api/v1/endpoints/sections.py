"""Section store routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.v1.dependencies import get_current_user_id, get_section_service
from app.api.v1.errors import to_http_exception
from app.core.exceptions import AppError
from app.schemas.common import ErrorResponse
from app.schemas.sections import SectionCreateRequest, SectionUpdateRequest
from app.schemas.soa import SectionRead
from app.services.section_service import SectionService
from app.services.section_templates import get_available_templates
from app.utils.responses import create_api_response

router = APIRouter()


@router.get(
    "/{project_id}/sections",
    response_model=dict,
    summary="List the sections of a project in section order",
    operation_id="list_soa_sections",
)
async def list_sections(
    project_id: UUID,
    section_service: Annotated[SectionService, Depends(get_section_service)],
) -> dict:
    try:
        sections = await section_service.execute(action="list", project_id=project_id)
    except AppError as e:
        raise to_http_exception(e, "Failed to list sections")

    items = [SectionRead.model_validate(section) for section in sections]
    return create_api_response(items, f"{len(items)} section(s) retrieved")


@router.get(
    "/{project_id}/sections/available",
    response_model=dict,
    summary="List catalogue sections not yet in the project",
    operation_id="list_available_soa_sections",
)
async def list_available_sections(
    project_id: UUID,
    section_service: Annotated[SectionService, Depends(get_section_service)],
) -> dict:
    try:
        existing = await section_service.section_repo.get_keys(project_id)
    except AppError as e:
        raise to_http_exception(e, "Failed to list available sections")

    templates = get_available_templates(existing)
    return create_api_response(
        {"items": [template.model_dump() for template in templates]},
        f"{len(templates)} template(s) available",
    )


@router.post(
    "/{project_id}/sections",
    status_code=status.HTTP_201_CREATED,
    response_model=dict,
    responses={409: {"description": "Section already exists", "model": ErrorResponse}},
    summary="Add a catalogue section",
    operation_id="add_soa_section",
)
async def add_section(
    project_id: UUID,
    request: SectionCreateRequest,
    section_service: Annotated[SectionService, Depends(get_section_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    try:
        section = await section_service.execute(
            action="add",
            project_id=project_id,
            section_key=request.section_key,
            content=request.content,
            author_id=user_id,
            generate_content=request.generate_content,
        )
    except AppError as e:
        raise to_http_exception(e, f"Failed to add section {request.section_key}")

    return create_api_response(SectionRead.model_validate(section), "Section added")


@router.put(
    "/{project_id}/sections/{section_key}",
    response_model=dict,
    summary="Replace the content of a section",
    operation_id="update_soa_section",
)
async def update_section(
    project_id: UUID,
    section_key: str,
    request: SectionUpdateRequest,
    section_service: Annotated[SectionService, Depends(get_section_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    sources = [source.to_storage() for source in request.sources] if request.sources is not None else None
    try:
        section = await section_service.execute(
            action="update",
            project_id=project_id,
            section_key=section_key,
            content=request.content,
            title=request.title,
            sources=sources,
            author_id=user_id,
        )
    except AppError as e:
        raise to_http_exception(e, f"Failed to update section {section_key}")

    return create_api_response(SectionRead.model_validate(section), "Section updated")


@router.delete(
    "/{project_id}/sections/{section_key}",
    response_model=dict,
    summary="Delete a section and all of its subsections",
    operation_id="delete_soa_section",
)
async def delete_section(
    project_id: UUID,
    section_key: str,
    section_service: Annotated[SectionService, Depends(get_section_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    try:
        deleted = await section_service.execute(
            action="delete", project_id=project_id, section_key=section_key, author_id=user_id
        )
    except AppError as e:
        raise to_http_exception(e, f"Failed to delete section {section_key}")

    return create_api_response({"deleted_keys": deleted}, f"{len(deleted)} section(s) deleted")


@router.post(
    "/{project_id}/sections/{section_key}/regenerate",
    response_model=dict,
    responses={422: {"description": "Nothing to generate from", "model": ErrorResponse}},
    summary="Regenerate one section from the source documents",
    operation_id="regenerate_soa_section",
)
async def regenerate_section(
    project_id: UUID,
    section_key: str,
    section_service: Annotated[SectionService, Depends(get_section_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> dict:
    try:
        section = await section_service.execute(
            action="regenerate", project_id=project_id, section_key=section_key, author_id=user_id
        )
    except AppError as e:
        raise to_http_exception(e, f"Failed to regenerate section {section_key}")

    return create_api_response(SectionRead.model_validate(section), "Section regenerated")
