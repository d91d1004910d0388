import uuid
from typing import Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import SoaSection
from app.repositories.base_repository import BaseRepository
from app.repositories.comment_repository import CommentRepository


class SectionRepository(BaseRepository[SoaSection]):
    """Repository for SOA section rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, SoaSection)

    async def list_for_project(self, project_id: uuid.UUID) -> List[SoaSection]:
        """Get all sections of a project in insertion order (unsorted)."""
        query = (
            select(SoaSection)
            .where(SoaSection.project_id == project_id)
            .order_by(SoaSection.created_at, SoaSection.section_key)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_key(self, project_id: uuid.UUID, section_key: str) -> Optional[SoaSection]:
        query = select(SoaSection).where(
            SoaSection.project_id == project_id,
            SoaSection.section_key == section_key,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_keys(self, project_id: uuid.UUID) -> set[str]:
        query = select(SoaSection.section_key).where(SoaSection.project_id == project_id)
        result = await self.session.execute(query)
        return set(result.scalars().all())

    async def get_children_keys(self, project_id: uuid.UUID, parent_keys: Iterable[str]) -> List[str]:
        """Get the keys of sections whose parent is one of ``parent_keys``."""
        parent_keys = list(parent_keys)
        if not parent_keys:
            return []

        query = select(SoaSection.section_key).where(
            SoaSection.project_id == project_id,
            SoaSection.parent_key.in_(parent_keys),
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_by_keys(self, project_id: uuid.UUID, section_keys: Iterable[str]) -> int:
        """Delete sections by key together with their comments."""
        section_keys = list(section_keys)
        if not section_keys:
            return 0

        condition = (SoaSection.project_id == project_id) & SoaSection.section_key.in_(section_keys)
        await self._delete_comments(condition)
        result = await self.session.execute(delete(SoaSection).where(condition))
        await self.session.flush()
        return result.rowcount

    async def delete_all_for_project(self, project_id: uuid.UUID) -> int:
        """Delete every section of a project together with their comments."""
        condition = SoaSection.project_id == project_id
        await self._delete_comments(condition)
        result = await self.session.execute(delete(SoaSection).where(condition))
        await self.session.flush()
        return result.rowcount

    async def bulk_create(self, project_id: uuid.UUID, rows: List[dict]) -> List[SoaSection]:
        """Insert many sections in a single flush.

        Args:
            project_id: Owning project
            rows: Column values for each section

        Returns:
            Created SoaSection instances
        """
        return await self.create_many([{"project_id": project_id, **row} for row in rows])

    async def _delete_comments(self, condition) -> None:
        # Bulk deletes bypass ORM cascades and SQLite does not enforce foreign keys
        section_ids = (await self.session.execute(select(SoaSection.id).where(condition))).scalars().all()
        await CommentRepository(self.session).delete_for_sections(section_ids)
