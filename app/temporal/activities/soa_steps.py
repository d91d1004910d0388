"""Temporal activity executing one SOA workflow step."""

from typing import Optional
from uuid import UUID

from temporalio import activity

from app.core.database import async_session_maker
from app.services.content_generation.client import LLMContentGenerationClient
from app.services.workflow_service import WorkflowService


@activity.defn(name="run_soa_step")
async def run_soa_step(
    project_id: str,
    step: int,
    run_handle: str,
    user_id: Optional[str] = None,
) -> dict:
    """Executes one step and returns its persisted result."""
    activity.logger.info(f"Running SOA step {step} for project {project_id}")

    async with async_session_maker() as session:
        service = WorkflowService(session, generation_client=LLMContentGenerationClient())
        result = await service.execute_step(UUID(project_id), step, run_handle, user_id)

    return result.model_dump()
