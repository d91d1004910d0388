import uuid
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Project, SourceDocument
from app.repositories.base_repository import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for SOA projects."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Project)

    async def create_project(
        self,
        name: str,
        client_name: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> Project:
        return await self.create(
            name=name,
            client_name=client_name,
            owner_id=owner_id,
            status="draft",
        )

    async def list_for_owner(self, owner_id: str) -> List[Project]:
        """Get an owner's projects, most recently updated first."""
        query = (
            select(Project)
            .where(Project.owner_id == owner_id)
            .order_by(Project.updated_at.desc(), Project.name)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_for_update(self, project_id: uuid.UUID) -> Optional[Project]:
        """Get a project row locked for the rest of the transaction."""
        return await self.get_by_id(project_id, for_update=True)

    async def set_status(self, project: Project, status: str) -> Project:
        if project.status != status:
            self.logger.info(
                "Project status change",
                extra={"project_id": str(project.id), "from": project.status, "to": status}
            )
            project.status = status
            await self.session.flush()
        return project

    async def delete(self, project: Project) -> None:
        """Delete a project; sections, comments, versions, documents and
        workflow state go with it through the ORM cascades.
        """
        await self.session.delete(project)
        await self.session.flush()


class SourceDocumentRepository(BaseRepository[SourceDocument]):
    """Repository for the extracted source documents of a project."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, SourceDocument)

    async def add_document(
        self,
        project_id: uuid.UUID,
        name: str,
        extracted_text: Optional[str],
        document_type: Optional[str] = None,
    ) -> SourceDocument:
        return await self.create(
            project_id=project_id,
            name=name,
            extracted_text=extracted_text,
            document_type=document_type,
        )

    async def list_for_project(self, project_id: uuid.UUID) -> List[SourceDocument]:
        query = (
            select(SourceDocument)
            .where(SourceDocument.project_id == project_id)
            .order_by(SourceDocument.created_at, SourceDocument.name)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
