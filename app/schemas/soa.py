"""SOA section content models shared by generation, storage and the API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.services.section_templates import ContentType


class TableData(BaseModel):
    """A table inside a section."""

    headers: List[str] = Field(default_factory=list, description="Column headers")
    rows: List[List[str]] = Field(default_factory=list, description="Row cells, one list per row")

    @field_validator("headers", mode="before")
    @classmethod
    def _stringify_headers(cls, value: Any) -> Any:
        if isinstance(value, list):
            return ["" if cell is None else str(cell) for cell in value]
        return value

    @field_validator("rows", mode="before")
    @classmethod
    def _stringify_cells(cls, value: Any) -> Any:
        # LLM output often carries numbers in table cells
        if isinstance(value, list):
            return [
                ["" if cell is None else str(cell) for cell in row] if isinstance(row, list) else row
                for row in value
            ]
        return value


class SectionContent(BaseModel):
    """Body of a section: free text, tables and bullet points."""

    text: Optional[str] = Field(None, description="Paragraph text")
    tables: Optional[List[TableData]] = Field(None, description="Tables in display order")
    bullets: Optional[List[str]] = Field(None, description="Bullet points")

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    @property
    def is_empty(self) -> bool:
        return not (self.text and self.text.strip()) and not self.tables and not self.bullets


class SourceReference(BaseModel):
    """Citation of the source document a section was generated from."""

    source_doc_id: Optional[str] = Field(None, description="Source document ID")
    source_doc_name: str = Field(..., description="Source document name")
    excerpt: str = Field("", description="Supporting excerpt")
    location: Optional[str] = Field(None, description="Page or section in the source")

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class SourceDocumentInput(BaseModel):
    """Source material handed to the content generator."""

    id: str
    name: str
    text: str


class GeneratedSection(BaseModel):
    """A section as produced by the content generator."""

    section_key: str
    title: str
    content: SectionContent = Field(default_factory=SectionContent)
    sources: List[SourceReference] = Field(default_factory=list)
    missing_fields: List[str] = Field(default_factory=list)


class GenerationResult(BaseModel):
    """Outcome of one generation call: produced sections and the keys that failed."""

    sections: List[GeneratedSection] = Field(default_factory=list)
    failed_keys: List[str] = Field(default_factory=list)


class SectionRead(BaseModel):
    """Section as returned by the API."""

    section_key: str
    parent_key: Optional[str] = None
    title: str
    content_type: ContentType
    content: Dict[str, Any] = Field(default_factory=dict)
    sources: List[Dict[str, Any]] = Field(default_factory=list)
    missing_fields: List[str] = Field(default_factory=list)
    status: str
    version: int = 0

    model_config = {"from_attributes": True}
