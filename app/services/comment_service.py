"""Reviewer comments on SOA sections."""

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import CommentNotFoundError, SectionNotFoundError, ValidationError
from app.database.models import SectionComment
from app.repositories.comment_repository import CommentRepository
from app.repositories.section_repository import SectionRepository
from app.services.base_service import BaseService
from app.services.project_service import ProjectService
from app.services.versioning.version_service import VersionService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

COMMENT_STATUSES = ("open", "resolved")
MAX_COMMENT_LENGTH = 2000


class CommentService(BaseService):
    """Comments attached to sections during review.

    Comments are not versioned and are deleted together with their section.
    """

    def __init__(self, session: AsyncSession, version_service: Optional[VersionService] = None):
        self.comment_repo = CommentRepository(session)
        super().__init__(self.comment_repo)
        self.session = session
        self.section_repo = SectionRepository(session)
        self.project_service = ProjectService(session)
        self.version_service = version_service or VersionService(session)

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")
        project_id = kwargs.get("project_id")

        if action == "list":
            return await self.list_comments(project_id, kwargs.get("section_key"))
        elif action == "add":
            return await self.add_comment(
                project_id, kwargs.get("section_key"), kwargs.get("body"), kwargs.get("author_id")
            )
        elif action == "update":
            return await self.update_comment(
                project_id, kwargs.get("comment_id"), status=kwargs.get("status"), body=kwargs.get("body")
            )
        else:
            raise ValidationError(f"Unknown action: {action}")

    async def list_comments(self, project_id: UUID, section_key: Optional[str] = None) -> List[SectionComment]:
        await self.project_service.get_project(project_id)
        if section_key is not None:
            await self._get_section(project_id, section_key)
        return await self.comment_repo.list_for_project(project_id, section_key)

    async def add_comment(
        self,
        project_id: UUID,
        section_key: str,
        body: str,
        author_id: str,
    ) -> SectionComment:
        """Add an open comment to a section.

        Raises:
            NotFoundError: If the project does not exist
            SectionNotFoundError: If the section does not exist
            ValidationError: If the body is empty or too long
        """
        body = self._check_body(body)
        if not author_id:
            raise ValidationError("author_id is required")
        await self.project_service.get_project(project_id)

        # The section must not be replaced between the lookup and the insert
        async with self.version_service.content_lock(project_id):
            section = await self._get_section(project_id, section_key)
            comment = await self.comment_repo.create(
                project_id=project_id,
                section_id=section.id,
                section_key=section.section_key,
                author_id=author_id,
                body=body,
                status="open",
            )
            await self.session.commit()

        LOGGER.info(
            "Section comment added",
            extra={"project_id": str(project_id), "section_key": section_key, "comment_id": str(comment.id)}
        )
        return comment

    async def update_comment(
        self,
        project_id: UUID,
        comment_id: UUID,
        status: Optional[str] = None,
        body: Optional[str] = None,
    ) -> SectionComment:
        """Resolve, reopen or reword a comment."""
        if status is None and body is None:
            raise ValidationError("Nothing to update: give a status or a body")
        if status is not None and status not in COMMENT_STATUSES:
            raise ValidationError(f"Invalid comment status '{status}'")

        comment = await self.comment_repo.get_by_id(comment_id, for_update=True)
        if comment is None or comment.project_id != project_id:
            raise CommentNotFoundError(f"Comment {comment_id} not found in project {project_id}")

        if body is not None:
            comment.body = self._check_body(body)
        if status is not None:
            comment.status = status
        await self.session.flush()
        await self.session.commit()

        LOGGER.info(
            "Section comment updated",
            extra={"project_id": str(project_id), "comment_id": str(comment_id), "comment_status": comment.status}
        )
        return comment

    async def _get_section(self, project_id: UUID, section_key: str):
        section = await self.section_repo.get_by_key(project_id, section_key)
        if section is None:
            raise SectionNotFoundError(f"Section {section_key} not found in project {project_id}")
        return section

    @staticmethod
    def _check_body(body: Optional[str]) -> str:
        body = (body or "").strip()
        if not body:
            raise ValidationError("Comment body is required")
        if len(body) > MAX_COMMENT_LENGTH:
            raise ValidationError(f"Comment body exceeds {MAX_COMMENT_LENGTH} characters")
        return body
