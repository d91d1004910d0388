"""Shared FastAPI dependencies for the v1 API."""

from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_async_session
from app.services.approval_service import ApprovalService
from app.services.comment_service import CommentService
from app.services.content_generation.client import ContentGenerationClient, LLMContentGenerationClient
from app.services.project_service import ProjectService
from app.services.section_service import SectionService
from app.services.versioning.version_service import VersionService
from app.services.workflow_service import (
    InlineWorkflowRunner,
    WorkflowRunner,
    WorkflowService,
    build_default_runner,
)

_runner: Optional[WorkflowRunner] = None


async def get_current_user_id(
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> str:
    """Acting user from the ``X-User-Id`` header, the system author when absent."""
    return x_user_id or settings.workflow.system_author_id


def get_generation_client() -> ContentGenerationClient:
    return LLMContentGenerationClient()


def get_workflow_runner() -> WorkflowRunner:
    """Process-wide runner, created on first use."""
    global _runner
    if _runner is None:
        _runner = build_default_runner(generation_client=LLMContentGenerationClient())
    return _runner


async def shutdown_workflow_runner() -> None:
    """Let in-process runs finish and forget the runner."""
    global _runner
    if isinstance(_runner, InlineWorkflowRunner):
        await _runner.wait_idle()
    _runner = None


async def get_project_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> ProjectService:
    return ProjectService(db_session)


async def get_version_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> VersionService:
    return VersionService(db_session)


async def get_section_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    generation_client: Annotated[ContentGenerationClient, Depends(get_generation_client)],
) -> SectionService:
    return SectionService(db_session, generation_client=generation_client)


async def get_workflow_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    runner: Annotated[WorkflowRunner, Depends(get_workflow_runner)],
) -> WorkflowService:
    """Dependency to create WorkflowService instance.

    This ensures consistent service instantiation across all routes.
    """
    return WorkflowService(db_session, runner=runner)


async def get_approval_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> ApprovalService:
    return ApprovalService(db_session)


async def get_comment_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> CommentService:
    return CommentService(db_session)
