from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.soa import SectionContent, SourceReference


class SectionCreateRequest(BaseModel):
    """Request model for adding a catalogue section."""

    section_key: str = Field(..., description="Catalogue section key, e.g. M5_S2")
    content: Optional[SectionContent] = Field(None, description="Initial content")
    generate_content: bool = Field(False, description="Generate initial content from source documents")


class SectionUpdateRequest(BaseModel):
    """Request model for replacing the content of a section."""

    content: SectionContent
    title: Optional[str] = Field(None, description="New title")
    sources: Optional[List[SourceReference]] = Field(None, description="Replacement source citations")


class RollbackRequest(BaseModel):
    """Request model for rolling sections back to a version."""

    version: int = Field(..., ge=1, description="Target version number")


class CommentCreateRequest(BaseModel):
    """Request model for commenting on a section."""

    section_key: str = Field(..., min_length=1, description="Section the comment refers to")
    body: str = Field(..., min_length=1, max_length=2000, description="Comment text")


class CommentUpdateRequest(BaseModel):
    """Request model for resolving, reopening or rewording a comment."""

    status: Optional[Literal["open", "resolved"]] = Field(None, description="Comment status")
    body: Optional[str] = Field(None, min_length=1, max_length=2000, description="Comment text")


class CommentRead(BaseModel):
    """Section comment as returned by the API."""

    id: UUID
    project_id: UUID
    section_key: str
    author_id: str
    body: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
