from typing import Optional, Any
from abc import ABC, abstractmethod

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.base_repository import BaseRepository
from app.core.exceptions import AppError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseService(ABC):
    """Base class for application services.

    Services own the transaction boundary: repositories flush, services
    commit once per logical operation and roll back when it fails.
    """

    session: Optional[AsyncSession] = None

    def __init__(self, repository: Optional[BaseRepository] = None):
        """Initialize the service.

        Args:
            repository: Optional primary repository for the service
        """
        self.repository = repository
        self.logger = LOGGER

    async def execute(self, *args, **kwargs) -> Any:
        """Validate the input, run the service and normalise failures.

        Any non-``AppError`` exception is logged and wrapped in ``AppError``;
        in both cases the session is rolled back before re-raising.

        Raises:
            AppError: If execution fails
        """
        try:
            self.validate(*args, **kwargs)

            return await self.run(*args, **kwargs)

        except AppError:
            await self._rollback()
            raise

        except Exception as e:
            await self._rollback()
            self.logger.error(
                f"Service execution failed: {str(e)}",
                exc_info=True,
                extra={"service": self.__class__.__name__}
            )
            raise AppError(f"Service execution failed: {str(e)}", original_error=e)

    def validate(self, *args, **kwargs):
        """Validate service input.

        Override this method to implement custom validation logic.

        Raises:
            ValidationError: If input is invalid
        """
        pass

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        """Run the core service logic.

        Must be implemented by subclasses.
        """
        pass

    async def _rollback(self) -> None:
        if self.session is not None and self.session.in_transaction():
            await self.session.rollback()
