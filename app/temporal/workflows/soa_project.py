"""Durable driver for one SOA workflow run.

The workflow only sequences steps; every step runs as the ``run_soa_step``
activity, which re-reads the persisted workflow state, so the database row
stays the single source of truth. The run ends when a step suspends for
approval, fails, or finds that the run was reset.
"""

from datetime import timedelta
from typing import Optional

from temporalio import workflow
from temporalio.common import RetryPolicy

# Activity results that end the run for now
STOPPING_STATUSES = ("failed", "awaiting_approval", "superseded")
LAST_STEP = 6


@workflow.defn(name="SoaProjectWorkflow")
class SoaProjectWorkflow:
    """Runs SOA workflow steps in order from ``start_step``."""

    def __init__(self):
        self._status = "initialized"
        self._current_step: Optional[int] = None
        self._last_result: Optional[dict] = None

    @workflow.query
    def get_status(self) -> dict:
        """Query handler for real-time status updates."""
        return {
            "status": self._status,
            "current_step": self._current_step,
            "last_result": self._last_result,
        }

    @workflow.run
    async def run(
        self,
        project_id: str,
        run_handle: str,
        user_id: Optional[str] = None,
        start_step: int = 1,
    ) -> dict:
        """
        Execute SOA steps until the run suspends or finishes.

        Args:
            project_id: UUID of the SOA project
            run_handle: Run handle stored on the workflow state row
            user_id: User that started the run
            start_step: First step to execute

        Returns:
            The result of the last executed step
        """
        workflow.logger.info(f"Starting SOA workflow run {run_handle} from step {start_step}")
        self._status = "running"

        result: dict = {"step": start_step, "status": "completed", "skipped": True}
        for step in range(start_step, LAST_STEP + 1):
            self._current_step = step
            # A failed step is retried only by an explicit re-trigger
            result = await workflow.execute_activity(
                "run_soa_step",
                args=[project_id, step, run_handle, user_id],
                start_to_close_timeout=timedelta(minutes=30),
                retry_policy=RetryPolicy(maximum_attempts=1),
            )
            self._last_result = result
            if result.get("status") in STOPPING_STATUSES:
                break

        self._status = result.get("status", "completed")
        workflow.logger.info(
            f"SOA workflow run {run_handle} stopped at step {result.get('step')}: {self._status}"
        )
        return result
