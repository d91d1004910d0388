import uuid
from typing import Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import SectionComment
from app.repositories.base_repository import BaseRepository


class CommentRepository(BaseRepository[SectionComment]):
    """Repository for reviewer comments on sections."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, SectionComment)

    async def list_for_project(
        self,
        project_id: uuid.UUID,
        section_key: Optional[str] = None,
    ) -> List[SectionComment]:
        """Get a project's comments, newest first, optionally for one section."""
        query = select(SectionComment).where(SectionComment.project_id == project_id)
        if section_key is not None:
            query = query.where(SectionComment.section_key == section_key)
        query = query.order_by(SectionComment.created_at.desc(), SectionComment.id)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_for_sections(self, section_ids: Iterable[uuid.UUID]) -> int:
        section_ids = list(section_ids)
        if not section_ids:
            return 0

        stmt = delete(SectionComment).where(SectionComment.section_id.in_(section_ids))
        result = await self.session.execute(stmt)
        return result.rowcount
