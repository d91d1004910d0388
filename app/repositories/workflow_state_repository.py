import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import WorkflowState
from app.repositories.base_repository import BaseRepository


class WorkflowStateRepository(BaseRepository[WorkflowState]):
    """Repository for the per-project workflow state row."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, WorkflowState)

    async def get_by_project(self, project_id: uuid.UUID) -> Optional[WorkflowState]:
        query = (
            select(WorkflowState)
            .where(WorkflowState.project_id == project_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_for_update(self, project_id: uuid.UUID) -> Optional[WorkflowState]:
        """Get the state row with a row lock so polling reads never see a torn write."""
        query = (
            select(WorkflowState)
            .where(WorkflowState.project_id == project_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create_state(
        self,
        project_id: uuid.UUID,
        step_statuses: dict,
        current_step: int,
    ) -> WorkflowState:
        """Create the single workflow state row of a project.

        Args:
            project_id: Owning project
            step_statuses: Complete step1..step6 status map
            current_step: Highest non-pending step index

        Returns:
            Created WorkflowState instance
        """
        return await self.create(
            project_id=project_id,
            step_statuses=dict(step_statuses),
            step_outputs={},
            current_step=current_step,
            workflow_run_id=None,
        )

    async def save(
        self,
        state: WorkflowState,
        step_statuses: dict,
        current_step: int,
        step_outputs: Optional[dict] = None,
    ) -> WorkflowState:
        # JSON columns are not mutation-tracked; always assign new objects
        state.step_statuses = dict(step_statuses)
        state.current_step = current_step
        if step_outputs is not None:
            state.step_outputs = dict(step_outputs)
        await self.session.flush()
        return state

    async def set_run_handle(self, state: WorkflowState, run_handle: Optional[str]) -> WorkflowState:
        state.workflow_run_id = run_handle
        await self.session.flush()
        return state
