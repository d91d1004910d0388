"""Temporal worker service for SOA workflows.

This worker:
- Connects to the configured Temporal server
- Registers the SOA workflow and its step activity
- Polls the configured task queue
"""

import asyncio

from temporalio.worker import Worker

from app.core.config import settings
from app.core.temporal_client import get_temporal_client
from app.temporal.activities import run_soa_step
from app.temporal.workflows import SoaProjectWorkflow
from app.utils.logging import get_logger

logger = get_logger(__name__)


def build_worker(client) -> Worker:
    return Worker(
        client,
        task_queue=settings.temporal_task_queue,
        workflows=[SoaProjectWorkflow],
        activities=[run_soa_step],
        max_concurrent_activities=5,
        max_concurrent_workflow_tasks=10,
    )


async def main():
    """Start the Temporal worker."""
    client = await get_temporal_client()
    logger.info("Successfully connected to Temporal server")

    worker = build_worker(client)

    logger.info("=" * 60)
    logger.info("SOA Temporal Worker Started")
    logger.info(f"Task Queue: {settings.temporal_task_queue}")
    logger.info("=" * 60)

    await worker.run()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")
    except Exception as e:
        logger.error(f"Worker failed: {e}", exc_info=True)
        raise
