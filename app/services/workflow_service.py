"""SOA workflow engine.

The engine is an explicit persisted state machine: one ``WorkflowState`` row
per project holds every step status. A run re-reads that row before each
step, skips completed steps and re-enters at the first unfinished one, so
re-invoking a run after a crash or an approval is always safe.

Each run carries a run handle stored on the state row. A step result is only
written while the row still carries that handle; a reset clears the handle,
so a late result from an abandoned run is discarded instead of overwriting
the operator's decision.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Set
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import AppError, NotFoundError, ValidationError, WorkflowStateError
from app.database.models import Project, WorkflowState
from app.repositories.project_repository import ProjectRepository
from app.repositories.workflow_state_repository import WorkflowStateRepository
from app.services.base_service import BaseService
from app.services.content_generation.client import ContentGenerationClient
from app.services.workflow_steps import (
    APPROVAL_STEPS,
    AWAITING_APPROVAL,
    COMPLETED,
    FAILED,
    FINALIZE,
    GENERATE,
    IN_PROGRESS,
    PARSE,
    PENDING,
    STEP_NAMES,
    STEPS,
    VALIDATE,
    SoaStepHandlers,
    compute_current_step,
    first_unfinished_step,
    initial_statuses,
    step_key,
)
from app.utils.locks import ProjectLockRegistry, project_locks
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

LOCK_NAMESPACE = "workflow"

# Step outcome statuses that end a run for now
SUPERSEDED = "superseded"
STOPPING_STATUSES = (FAILED, AWAITING_APPROVAL, SUPERSEDED)


class StepResult(BaseModel):
    """Result of executing (or skipping) one step of a run."""

    step: int
    status: str
    message: str = ""
    output: Dict[str, Any] = Field(default_factory=dict)
    skipped: bool = False


def new_run_handle(project_id: UUID) -> str:
    return f"soa-{project_id}-{uuid.uuid4().hex[:12]}"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite returns naive datetimes; they are stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class WorkflowRunner(ABC):
    """Executes workflow runs somewhere: in process or on Temporal."""

    @abstractmethod
    async def submit(self, project_id: UUID, run_handle: str, user_id: Optional[str], start_step: int) -> None:
        """Start executing steps from ``start_step`` for the given run."""


class WorkflowService(BaseService):
    """Starts, resumes, executes and resets SOA workflow runs.

    All state row mutations for a project are serialised with a per-project
    lock plus a ``SELECT ... FOR UPDATE`` on the row.
    """

    def __init__(
        self,
        session: AsyncSession,
        runner: Optional[WorkflowRunner] = None,
        generation_client: Optional[ContentGenerationClient] = None,
        locks: Optional[ProjectLockRegistry] = None,
    ):
        """Initialize workflow service with database session.

        Args:
            session: Async database session for repository access
            runner: Where submitted runs execute; required for start/resume
            generation_client: Content generator used by the Generate step
            locks: Lock registry, defaults to the process-wide registry
        """
        self.state_repo = WorkflowStateRepository(session)
        super().__init__(self.state_repo)
        self.session = session
        self.runner = runner
        self.project_repo = ProjectRepository(session)
        self.handlers = SoaStepHandlers(session, generation_client=generation_client)
        self.locks = locks or project_locks

    async def run(self, *args, **kwargs) -> Any:
        """Route to a workflow operation based on ``action``."""
        action = kwargs.get("action")
        project_id = kwargs.get("project_id")

        if action == "start":
            return await self.start_or_resume(project_id, kwargs.get("user_id"))
        elif action == "get_state":
            return await self.get_state(project_id)
        elif action == "reset":
            return await self.reset(project_id)
        elif action == "execute_step":
            return await self.execute_step(
                project_id, kwargs.get("step"), kwargs.get("run_handle"), kwargs.get("user_id")
            )
        else:
            raise ValidationError(f"Unknown action: {action}")

    # Control surface

    async def start_or_resume(self, project_id: UUID, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Start the workflow, resume it, or re-trigger a failed step.

        Calling this while a step is in progress or awaiting approval changes
        nothing. Otherwise the run re-enters at the first unfinished step; a
        failed Generate re-runs Generate and a rejected approval re-enters at
        Validate so corrected content is checked again.

        Returns:
            The workflow state after the call, with ``started`` telling whether
            a run was submitted
        """
        if self.runner is None:
            raise WorkflowStateError("No workflow runner configured")

        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            project = await self._get_project_for_update(project_id)
            state = await self.state_repo.get_for_update(project_id)

            if state is None:
                statuses = initial_statuses()
                statuses[step_key(PARSE)] = COMPLETED
                statuses[step_key(GENERATE)] = IN_PROGRESS
                state = await self.state_repo.create_state(
                    project_id, statuses, compute_current_step(statuses)
                )
                start_step = GENERATE
            else:
                start_step = self._plan_resume(state)
                if start_step is None:
                    await self.session.commit()
                    LOGGER.info(
                        "Start requested while run active or finished, no-op",
                        extra={"project_id": str(project_id), "statuses": state.step_statuses}
                    )
                    return self._state_view(state, project, started=False)

            run_handle = new_run_handle(project_id)
            await self.state_repo.set_run_handle(state, run_handle)
            await self.project_repo.set_status(project, "in_progress")
            await self.session.commit()

        LOGGER.info(
            "Submitting workflow run",
            extra={"project_id": str(project_id), "run_handle": run_handle, "start_step": start_step}
        )
        await self.runner.submit(project_id, run_handle, user_id, start_step)

        await self.session.refresh(state)
        await self.session.refresh(project)
        return self._state_view(state, project, started=True)

    def _plan_resume(self, state: WorkflowState) -> Optional[int]:
        """Decide where a start request re-enters, updating statuses in place.

        Returns:
            The step to start from, or None when nothing should run
        """
        statuses = dict(state.step_statuses)
        values = set(statuses.values())

        if IN_PROGRESS in values or AWAITING_APPROVAL in values:
            return None

        if statuses[step_key(GENERATE)] == PENDING:
            statuses[step_key(PARSE)] = COMPLETED
            statuses[step_key(GENERATE)] = IN_PROGRESS
            state.step_statuses = statuses
            state.current_step = compute_current_step(statuses)
            return GENERATE

        failed = [step for step in STEPS if statuses[step_key(step)] == FAILED]
        if failed:
            step = failed[0]
            if step in APPROVAL_STEPS:
                # Rejected content goes back through validation and both approvals
                for later in (VALIDATE,) + APPROVAL_STEPS:
                    statuses[step_key(later)] = PENDING
                step = VALIDATE
            statuses[step_key(step)] = IN_PROGRESS
            state.step_statuses = statuses
            state.current_step = compute_current_step(statuses)
            LOGGER.info(
                "Re-triggering failed workflow step",
                extra={"project_id": str(state.project_id), "step": step}
            )
            return step

        return first_unfinished_step(statuses)

    async def get_state(self, project_id: UUID) -> Dict[str, Any]:
        """Get the workflow state for polling, including the ``stuck`` flag."""
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")

        state = await self.state_repo.get_by_project(project_id)
        if state is None:
            statuses = initial_statuses()
            return {
                "project_id": str(project_id),
                "project_status": project.status,
                "current_step": compute_current_step(statuses),
                "step_statuses": statuses,
                "step_outputs": {},
                "workflow_run_id": None,
                "stuck": False,
                "updated_at": None,
            }
        return self._state_view(state, project)

    async def reset(self, project_id: UUID) -> Dict[str, Any]:
        """Abort a stuck run: the in-progress current step goes back to pending.

        Raises:
            WorkflowStateError: If the current step is not in progress
        """
        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            project = await self._get_project_for_update(project_id)
            state = await self._get_state_for_update(project_id)

            statuses = dict(state.step_statuses)
            current = state.current_step
            if statuses.get(step_key(current)) != IN_PROGRESS:
                raise WorkflowStateError(
                    f"Workflow is not stuck: step {current} is {statuses.get(step_key(current))}"
                )

            statuses[step_key(current)] = PENDING
            await self.state_repo.save(state, statuses, compute_current_step(statuses))
            await self.state_repo.set_run_handle(state, None)
            await self.session.commit()

        LOGGER.warning(
            "Workflow reset",
            extra={"project_id": str(project_id), "step": current}
        )
        return self._state_view(state, project)

    # Run execution

    async def run_workflow(
        self,
        project_id: UUID,
        run_handle: str,
        user_id: Optional[str] = None,
        start_step: int = PARSE,
    ) -> StepResult:
        """Execute steps in order until one suspends, fails or the run ends."""
        result = StepResult(step=start_step, status=COMPLETED, skipped=True)
        for step in STEPS:
            if step < start_step:
                continue
            result = await self.execute_step(project_id, step, run_handle, user_id)
            if result.status in STOPPING_STATUSES:
                break

        LOGGER.info(
            "Workflow run stopped",
            extra={
                "project_id": str(project_id),
                "run_handle": run_handle,
                "step": result.step,
                "status": result.status,
            }
        )
        return result

    async def execute_step(
        self,
        project_id: UUID,
        step: int,
        run_handle: str,
        user_id: Optional[str] = None,
    ) -> StepResult:
        """Execute one step of a run, persisting its status before returning.

        Completed steps are skipped, so re-invoking a step on resume is safe.
        The slow part of a step runs unlocked; its writes and the new status
        are then committed together under the workflow and content locks,
        only while the run handle still matches. Any exception raised by the
        step handler marks the step failed.
        """
        if step not in STEPS:
            raise ValidationError(f"Invalid workflow step: {step}")

        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            state = await self._get_state_for_update(project_id)
            if state.workflow_run_id != run_handle:
                await self.session.rollback()
                return self._superseded(project_id, step, run_handle)

            status = state.step_statuses.get(step_key(step))
            if status in (COMPLETED, AWAITING_APPROVAL, FAILED):
                await self.session.commit()
                return StepResult(step=step, status=status, skipped=True)

            if status != IN_PROGRESS and step not in APPROVAL_STEPS:
                statuses = dict(state.step_statuses)
                statuses[step_key(step)] = IN_PROGRESS
                await self.state_repo.save(state, statuses, compute_current_step(statuses))
            await self.session.commit()

        LOGGER.info(
            f"Executing step {step} ({STEP_NAMES[step]})",
            extra={"project_id": str(project_id), "run_handle": run_handle}
        )

        try:
            prepared = await self.handlers.prepare(step, project_id)
        except Exception as e:
            async with self.locks.hold(LOCK_NAMESPACE, project_id):
                return await self._record_failure(project_id, step, run_handle, e)

        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            async with self.handlers.version_service.content_lock(project_id):
                state = await self._get_state_for_update(project_id)
                if state.workflow_run_id != run_handle:
                    await self.session.rollback()
                    return self._superseded(project_id, step, run_handle)

                try:
                    outcome = await self.handlers.handle(step, project_id, user_id, prepared)
                except Exception as e:
                    return await self._record_failure(project_id, step, run_handle, e)

                statuses = dict(state.step_statuses)
                statuses[step_key(step)] = outcome.status
                outputs = dict(state.step_outputs or {})
                outputs[step_key(step)] = outcome.output
                if outcome.status == COMPLETED and step == FINALIZE:
                    await self.state_repo.set_run_handle(state, None)
                await self.state_repo.save(state, statuses, compute_current_step(statuses), outputs)
                await self.session.commit()

        return StepResult(step=step, status=outcome.status, message=outcome.message, output=outcome.output)

    async def _record_failure(self, project_id: UUID, step: int, run_handle: str, error: Exception) -> StepResult:
        """Discard the step's writes and mark it failed; the caller holds the workflow lock."""
        await self.session.rollback()
        message = error.message if isinstance(error, AppError) else str(error)
        LOGGER.error(
            f"Step {step} ({STEP_NAMES[step]}) failed: {message}",
            exc_info=error,
            extra={"project_id": str(project_id), "run_handle": run_handle}
        )

        state = await self._get_state_for_update(project_id)
        if state.workflow_run_id != run_handle:
            await self.session.rollback()
            return self._superseded(project_id, step, run_handle)

        statuses = dict(state.step_statuses)
        statuses[step_key(step)] = FAILED
        outputs = dict(state.step_outputs or {})
        outputs[step_key(step)] = {"error": message}
        await self.state_repo.save(state, statuses, compute_current_step(statuses), outputs)
        await self.session.commit()

        return StepResult(
            step=step,
            status=FAILED,
            message=f"Step {step} ({STEP_NAMES[step]}) failed: {message}",
            output={"error": message},
        )

    # Helpers

    def _superseded(self, project_id: UUID, step: int, run_handle: str) -> StepResult:
        LOGGER.warning(
            "Discarding step of a superseded run",
            extra={"project_id": str(project_id), "step": step, "run_handle": run_handle}
        )
        return StepResult(step=step, status=SUPERSEDED, message="Run was reset or replaced")

    async def _get_project_for_update(self, project_id: UUID) -> Project:
        project = await self.project_repo.get_for_update(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        return project

    async def _get_state_for_update(self, project_id: UUID) -> WorkflowState:
        state = await self.state_repo.get_for_update(project_id)
        if state is None:
            raise NotFoundError(f"Workflow for project {project_id} has not been started")
        return state

    def _state_view(self, state: WorkflowState, project: Project, started: Optional[bool] = None) -> Dict[str, Any]:
        view = {
            "project_id": str(state.project_id),
            "project_status": project.status,
            "current_step": state.current_step,
            "step_statuses": dict(state.step_statuses),
            "step_outputs": dict(state.step_outputs or {}),
            "workflow_run_id": state.workflow_run_id,
            "stuck": self._is_stuck(state),
            "updated_at": state.updated_at,
        }
        if started is not None:
            view["started"] = started
        return view

    @staticmethod
    def _is_stuck(state: WorkflowState) -> bool:
        if IN_PROGRESS not in state.step_statuses.values():
            return False
        updated_at = as_utc(state.updated_at)
        if updated_at is None:
            return False
        threshold = timedelta(minutes=settings.workflow.stuck_after_minutes)
        return datetime.now(timezone.utc) - updated_at > threshold


SessionFactory = Callable[[], Any]


class InlineWorkflowRunner(WorkflowRunner):
    """Runs workflows in the API process.

    With ``background=True`` runs are scheduled as asyncio tasks and the
    caller returns immediately; otherwise ``submit`` awaits the whole run.
    Each run opens its own session from ``session_factory``.
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        generation_client: Optional[ContentGenerationClient] = None,
        background: bool = True,
    ):
        if session_factory is None:
            from app.core.database import async_session_maker
            session_factory = async_session_maker

        self.session_factory = session_factory
        self.generation_client = generation_client
        self.background = background
        self._tasks: Set[asyncio.Task] = set()
        self.last_result: Optional[StepResult] = None

    async def submit(self, project_id: UUID, run_handle: str, user_id: Optional[str], start_step: int) -> None:
        if not self.background:
            await self._run(project_id, run_handle, user_id, start_step)
            return

        task = asyncio.create_task(self._run(project_id, run_handle, user_id, start_step))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, project_id: UUID, run_handle: str, user_id: Optional[str], start_step: int) -> StepResult:
        async with self.session_factory() as session:
            service = WorkflowService(session, generation_client=self.generation_client)
            try:
                self.last_result = await service.run_workflow(project_id, run_handle, user_id, start_step)
            except Exception:
                LOGGER.error(
                    "Inline workflow run crashed",
                    exc_info=True,
                    extra={"project_id": str(project_id), "run_handle": run_handle}
                )
                raise
            return self.last_result

    async def wait_idle(self) -> None:
        """Wait for every scheduled background run to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class TemporalWorkflowRunner(WorkflowRunner):
    """Starts runs as ``SoaProjectWorkflow`` executions on Temporal."""

    def __init__(self, task_queue: Optional[str] = None):
        self.task_queue = task_queue or settings.temporal_task_queue

    async def submit(self, project_id: UUID, run_handle: str, user_id: Optional[str], start_step: int) -> None:
        from app.core.temporal_client import get_temporal_client

        client = await get_temporal_client()
        await client.start_workflow(
            "SoaProjectWorkflow",
            args=[str(project_id), run_handle, user_id, start_step],
            id=run_handle,
            task_queue=self.task_queue,
        )
        LOGGER.info(
            "Temporal workflow started",
            extra={"project_id": str(project_id), "workflow_id": run_handle, "task_queue": self.task_queue}
        )


def build_default_runner(generation_client: Optional[ContentGenerationClient] = None) -> WorkflowRunner:
    if settings.temporal.enabled:
        return TemporalWorkflowRunner()
    return InlineWorkflowRunner(generation_client=generation_client)
