"""Approval gate for the two human sign-off steps of the SOA workflow."""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError, WorkflowStateError
from app.repositories.project_repository import ProjectRepository
from app.repositories.workflow_state_repository import WorkflowStateRepository
from app.services.base_service import BaseService
from app.services.workflow_service import LOCK_NAMESPACE
from app.services.workflow_steps import (
    APPROVAL_1,
    APPROVAL_2,
    APPROVAL_STEPS,
    AWAITING_APPROVAL,
    COMPLETED,
    FAILED,
    FINALIZE,
    SoaStepHandlers,
    compute_current_step,
    step_key,
)
from app.utils.locks import ProjectLockRegistry, project_locks
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ApprovalService(BaseService):
    """Records approval decisions on steps 4 and 5.

    Approving step 4 opens step 5; approving step 5 finalizes the project in
    the same transaction. Rejecting either step fails it and returns the
    project to ``in_progress`` so the operator can correct and re-trigger.
    """

    def __init__(self, session: AsyncSession, locks: Optional[ProjectLockRegistry] = None):
        self.state_repo = WorkflowStateRepository(session)
        super().__init__(self.state_repo)
        self.session = session
        self.project_repo = ProjectRepository(session)
        self.handlers = SoaStepHandlers(session)
        self.locks = locks or project_locks

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action == "approve":
            return await self.approve(kwargs.get("project_id"), kwargs.get("step"), kwargs.get("user_id"))
        elif action == "reject":
            return await self.reject(
                kwargs.get("project_id"), kwargs.get("step"), kwargs.get("comments"), kwargs.get("user_id")
            )
        else:
            raise ValidationError(f"Unknown action: {action}")

    async def approve(self, project_id: UUID, step: int, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Approve an awaiting approval step.

        Returns:
            Dict with the approved step, the next step, project status and step statuses
        """
        self._check_step(step)

        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            async with self.handlers.version_service.content_lock(project_id):
                project, state = await self._load_for_update(project_id)
                statuses = self._require_awaiting(state.step_statuses, step)
                outputs = dict(state.step_outputs or {})

                statuses[step_key(step)] = COMPLETED
                outputs[step_key(step)] = {"approved_by": user_id}

                if step == APPROVAL_1:
                    statuses[step_key(APPROVAL_2)] = AWAITING_APPROVAL
                    await self.project_repo.set_status(project, "review")
                    next_step = APPROVAL_2
                else:
                    outcome = await self.handlers.finalize(project_id, user_id)
                    statuses[step_key(FINALIZE)] = COMPLETED
                    outputs[step_key(FINALIZE)] = outcome.output
                    await self.state_repo.set_run_handle(state, None)
                    next_step = FINALIZE

                await self.state_repo.save(state, statuses, compute_current_step(statuses), outputs)
                await self.session.commit()

        LOGGER.info(
            f"Step {step} approved",
            extra={"project_id": str(project_id), "user_id": user_id, "next_step": next_step}
        )
        return {
            "step": step,
            "next_step": next_step,
            "project_status": project.status,
            "step_statuses": dict(state.step_statuses),
        }

    async def reject(
        self,
        project_id: UUID,
        step: int,
        comments: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Reject an awaiting approval step with reviewer comments."""
        self._check_step(step)

        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            project, state = await self._load_for_update(project_id)
            statuses = self._require_awaiting(state.step_statuses, step)
            outputs = dict(state.step_outputs or {})

            statuses[step_key(step)] = FAILED
            outputs[step_key(step)] = {"comments": comments, "rejected_by": user_id}

            await self.project_repo.set_status(project, "in_progress")
            await self.state_repo.save(state, statuses, compute_current_step(statuses), outputs)
            await self.session.commit()

        LOGGER.info(
            f"Step {step} rejected",
            extra={"project_id": str(project_id), "user_id": user_id}
        )
        return {
            "step": step,
            "project_status": project.status,
            "comments": comments,
            "step_statuses": dict(state.step_statuses),
        }

    @staticmethod
    def _check_step(step: int) -> None:
        if step not in APPROVAL_STEPS:
            raise ValidationError(f"Step {step} is not an approval step")

    @staticmethod
    def _require_awaiting(step_statuses: Dict[str, str], step: int) -> Dict[str, str]:
        status = step_statuses.get(step_key(step))
        if status != AWAITING_APPROVAL:
            raise WorkflowStateError(f"Step {step} is not awaiting approval (status: {status})")
        return dict(step_statuses)

    async def _load_for_update(self, project_id: UUID):
        project = await self.project_repo.get_for_update(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        state = await self.state_repo.get_for_update(project_id)
        if state is None:
            raise NotFoundError(f"Workflow for project {project_id} has not been started")
        return project, state
