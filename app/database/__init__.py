"""Database module for SQLAlchemy models."""

from app.database.models import (
    Project,
    SoaSection,
    SoaVersion,
    SourceDocument,
    WorkflowState,
)

__all__ = [
    "Project",
    "SourceDocument",
    "WorkflowState",
    "SoaSection",
    "SoaVersion",
]
