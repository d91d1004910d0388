from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ProjectCreateRequest(BaseModel):
    """Request model for creating an SOA project."""

    name: str = Field(..., min_length=1, description="Project name")
    client_name: Optional[str] = Field(None, description="Client the advice is prepared for")


class ProjectRead(BaseModel):
    """Project as returned by the API."""

    id: UUID
    name: str
    client_name: Optional[str] = None
    owner_id: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DocumentCreateRequest(BaseModel):
    """Request model for attaching an already extracted source document."""

    name: str = Field(..., min_length=1, description="Document name")
    extracted_text: Optional[str] = Field(None, description="Extracted document text")
    document_type: Optional[str] = Field(None, description="Document type, e.g. fact_find")


class DocumentRead(BaseModel):
    """Source document as returned by the API."""

    id: UUID
    project_id: UUID
    name: str
    document_type: Optional[str] = None
    has_text: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document) -> "DocumentRead":
        return cls(
            id=document.id,
            project_id=document.project_id,
            name=document.name,
            document_type=document.document_type,
            has_text=bool(document.extracted_text and document.extracted_text.strip()),
            created_at=document.created_at,
        )


class ProjectUpdateRequest(BaseModel):
    """Request model for updating an SOA project; omitted fields are kept."""

    name: Optional[str] = Field(None, min_length=1, description="Project name")
    client_name: Optional[str] = Field(None, description="Client the advice is prepared for")
    status: Optional[Literal["draft", "in_progress", "review", "completed"]] = Field(
        None, description="Project status"
    )
