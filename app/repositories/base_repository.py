from typing import Generic, List, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.utils.logging import get_logger

# Define a generic type for SQLAlchemy models
ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Base repository for the SOA tables.

    Repositories only flush; the calling service owns the transaction and
    commits once per logical operation. Reads by primary key always refresh
    identity-map instances, since several sessions may write the same rows
    during one workflow run.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    async def get_by_id(self, id: UUID, for_update: bool = False) -> Optional[ModelType]:
        """Get a record by its ID.

        Args:
            id: The UUID of the record
            for_update: Lock the row until the transaction ends

        Returns:
            The record if found, None otherwise
        """
        query = select(self.model).where(self.model.id == id).execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update()

        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            self.logger.error(
                f"Failed to load {self.model.__name__} {id}: {str(e)}",
                exc_info=True
            )
            raise
        return result.scalar_one_or_none()

    async def create(self, **kwargs) -> ModelType:
        """Add a new record and flush it so defaults and the ID are populated."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Failed to insert {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise
        return instance

    async def create_many(self, rows: List[dict]) -> List[ModelType]:
        """Add many records in a single flush."""
        instances = [self.model(**row) for row in rows]
        self.session.add_all(instances)
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Failed to insert {len(instances)} {self.model.__name__} rows: {str(e)}",
                exc_info=True
            )
            raise
        return instances
