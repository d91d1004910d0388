import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import SoaVersion
from app.repositories.base_repository import BaseRepository


class VersionRepository(BaseRepository[SoaVersion]):
    """Repository for the append-only SOA version log.

    Rows are only ever inserted, never updated or deleted.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, SoaVersion)

    async def list_for_project(self, project_id: uuid.UUID) -> List[SoaVersion]:
        """Get the full log ordered by version number ascending."""
        query = (
            select(SoaVersion)
            .where(SoaVersion.project_id == project_id)
            .order_by(SoaVersion.version_number)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_latest_number(self, project_id: uuid.UUID) -> int:
        """Get the latest version number, 0 when the project has no history."""
        query = select(func.max(SoaVersion.version_number)).where(
            SoaVersion.project_id == project_id
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none() or 0

    async def get_by_number(self, project_id: uuid.UUID, version_number: int) -> Optional[SoaVersion]:
        query = select(SoaVersion).where(
            SoaVersion.project_id == project_id,
            SoaVersion.version_number == version_number,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def append(
        self,
        project_id: uuid.UUID,
        version_number: int,
        patch: list,
        author_id: str,
        change_kind: str,
        summary: Optional[str] = None,
    ) -> SoaVersion:
        return await self.create(
            project_id=project_id,
            version_number=version_number,
            patch=patch,
            author_id=author_id,
            change_kind=change_kind,
            summary=summary,
        )
