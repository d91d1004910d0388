"""Project and source document management."""

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import Project, SourceDocument
from app.repositories.project_repository import ProjectRepository, SourceDocumentRepository
from app.schemas.soa import SourceDocumentInput
from app.services.base_service import BaseService
from app.services.versioning.version_service import VersionService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

PROJECT_STATUSES = ("draft", "in_progress", "review", "completed")


class ProjectService(BaseService):
    """Service for SOA projects and their extracted source documents."""

    def __init__(self, session: AsyncSession):
        self.project_repo = ProjectRepository(session)
        super().__init__(self.project_repo)
        self.session = session
        self.document_repo = SourceDocumentRepository(session)

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action == "create":
            return await self.create_project(
                kwargs.get("name"), kwargs.get("client_name"), kwargs.get("owner_id")
            )
        elif action == "get":
            return await self.get_project(kwargs.get("project_id"))
        elif action == "list":
            return await self.list_projects(kwargs.get("owner_id"))
        elif action == "update":
            return await self.update_project(
                kwargs.get("project_id"),
                name=kwargs.get("name"),
                client_name=kwargs.get("client_name"),
                status=kwargs.get("status"),
            )
        elif action == "delete":
            return await self.delete_project(kwargs.get("project_id"))
        elif action == "add_document":
            return await self.add_document(
                kwargs.get("project_id"),
                kwargs.get("name"),
                kwargs.get("extracted_text"),
                kwargs.get("document_type"),
            )
        else:
            raise ValidationError(f"Unknown action: {action}")

    async def create_project(
        self,
        name: str,
        client_name: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> Project:
        if not name or not name.strip():
            raise ValidationError("Project name is required")

        project = await self.project_repo.create_project(name.strip(), client_name, owner_id)
        await self.session.commit()

        LOGGER.info("Project created", extra={"project_id": str(project.id)})
        return project

    async def get_project(self, project_id: UUID) -> Project:
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        return project

    async def list_projects(self, owner_id: str) -> List[Project]:
        return await self.project_repo.list_for_owner(owner_id)

    async def update_project(
        self,
        project_id: UUID,
        name: Optional[str] = None,
        client_name: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Project:
        """Rename a project, change its client or move its status.

        Raises:
            NotFoundError: If the project does not exist
            ValidationError: If nothing is given or a value is invalid
        """
        if name is None and client_name is None and status is None:
            raise ValidationError("Nothing to update: give a name, client_name or status")
        if name is not None and not name.strip():
            raise ValidationError("Project name cannot be empty")
        if status is not None and status not in PROJECT_STATUSES:
            raise ValidationError(f"Invalid project status '{status}'")

        project = await self.project_repo.get_for_update(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")

        if name is not None:
            project.name = name.strip()
        if client_name is not None:
            project.client_name = client_name
        if status is not None:
            await self.project_repo.set_status(project, status)
        await self.session.flush()
        await self.session.commit()
        return project

    async def delete_project(self, project_id: UUID) -> None:
        """Delete a project with everything it owns.

        Runs under the content lock so no section write or version append
        of the project is in flight.
        """
        async with VersionService(self.session).content_lock(project_id):
            project = await self.project_repo.get_by_id(project_id)
            if project is None:
                raise NotFoundError(f"Project {project_id} not found")
            await self.project_repo.delete(project)
            await self.session.commit()

        LOGGER.info("Project deleted", extra={"project_id": str(project_id)})

    async def add_document(
        self,
        project_id: UUID,
        name: str,
        extracted_text: Optional[str],
        document_type: Optional[str] = None,
    ) -> SourceDocument:
        await self.get_project(project_id)
        document = await self.document_repo.add_document(project_id, name, extracted_text, document_type)
        await self.session.commit()

        LOGGER.info(
            "Source document added",
            extra={"project_id": str(project_id), "document_id": str(document.id), "document_name": name}
        )
        return document

    async def list_documents(self, project_id: UUID) -> List[SourceDocument]:
        return await self.document_repo.list_for_project(project_id)

    async def get_usable_documents(self, project_id: UUID) -> List[SourceDocumentInput]:
        """Get the documents that carry extracted text, as generator input."""
        documents = await self.document_repo.list_for_project(project_id)
        usable = [
            SourceDocumentInput(id=str(doc.id), name=doc.name, text=doc.extracted_text)
            for doc in documents
            if doc.extracted_text and doc.extracted_text.strip()
        ]
        if len(usable) < len(documents):
            LOGGER.warning(
                "Skipping source documents without extracted text",
                extra={"project_id": str(project_id), "skipped": len(documents) - len(usable)}
            )
        return usable
