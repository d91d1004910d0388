"""Temporal client connection management.

Shared by the API process (to start SOA workflow runs) and the worker.
"""

from typing import Optional

from temporalio.client import Client as TemporalClient

from app.core.config import settings
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TemporalClientManager:
    """Lazily creates a Temporal client and keeps it around for reuse."""

    _client: Optional[TemporalClient] = None

    async def get_client(self) -> TemporalClient:
        """Get or create the Temporal client.

        Returns:
            TemporalClient: Connected Temporal client
        """
        if self._client is None:
            target = f"{settings.temporal_host}:{settings.temporal_port}"
            LOGGER.info(
                "Connecting to Temporal",
                extra={"target": target, "namespace": settings.temporal_namespace}
            )
            self._client = await TemporalClient.connect(target, namespace=settings.temporal_namespace)
        return self._client

    def reset(self) -> None:
        """Forget the cached client so the next call reconnects."""
        self._client = None


# Global Temporal client manager instance
_temporal_manager = TemporalClientManager()


async def get_temporal_client() -> TemporalClient:
    return await _temporal_manager.get_client()


def reset_temporal_client() -> None:
    _temporal_manager.reset()
