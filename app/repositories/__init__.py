"""Repository layer modules."""

from app.repositories.comment_repository import CommentRepository
from app.repositories.project_repository import ProjectRepository, SourceDocumentRepository
from app.repositories.section_repository import SectionRepository
from app.repositories.version_repository import VersionRepository
from app.repositories.workflow_state_repository import WorkflowStateRepository

__all__ = [
    "CommentRepository",
    "ProjectRepository",
    "SourceDocumentRepository",
    "SectionRepository",
    "VersionRepository",
    "WorkflowStateRepository",
]
