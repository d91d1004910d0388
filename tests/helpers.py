"""Test doubles and builders shared across test modules."""

from typing import Dict, List, Optional, Sequence
from uuid import UUID

from app.schemas.soa import (
    GeneratedSection,
    GenerationResult,
    SectionContent,
    SourceDocumentInput,
    SourceReference,
    TableData,
)
from app.services.content_generation.client import ContentGenerationClient

FACT_FIND_TEXT = (
    "Client: Jane Citizen, age 45. Annual income $120,000. Superannuation balance $250,000 "
    "with an industry fund. Goals: retire at 60 and reduce insurance premiums.\n"
    "Risk profile: balanced. Existing cover: life $500,000, TPD $250,000."
)


def make_generated(section_key: str, text: Optional[str] = None) -> GeneratedSection:
    """Build a generated section with enough content to pass compliance checks."""
    body = text or (
        f"Content for {section_key}. This advice covers fees, costs and the strategy agreed "
        "with the client after reviewing the fact find in detail."
    )
    content = SectionContent(text=body)
    if section_key == "M5":
        content = SectionContent(
            text=body,
            tables=[TableData(headers=["Recommendation", "Benefit"], rows=[["Salary sacrifice", "Tax saving"]])],
        )
    return GeneratedSection(
        section_key=section_key,
        title=f"Section {section_key}",
        content=content,
        sources=[SourceReference(source_doc_name="fact_find.pdf", excerpt="Annual income $120,000")],
    )


class FakeContentGenerationClient(ContentGenerationClient):
    """In-memory generator returning preset sections."""

    def __init__(
        self,
        keys: Sequence[str] = ("M1", "M2", "M5", "M8", "M9", "M10"),
        failed_keys: Sequence[str] = (),
        error: Optional[Exception] = None,
        texts: Optional[Dict[str, str]] = None,
    ):
        self.keys = list(keys)
        self.failed_keys = list(failed_keys)
        self.error = error
        self.texts = texts or {}
        self.calls: List[Optional[List[str]]] = []

    async def generate_sections(
        self,
        project_id: UUID,
        documents: Sequence[SourceDocumentInput],
        section_filter: Optional[Sequence[str]] = None,
    ) -> GenerationResult:
        self.calls.append(list(section_filter) if section_filter is not None else None)
        if self.error is not None:
            raise self.error

        keys = self.keys if section_filter is None else [k for k in section_filter if k not in self.failed_keys]
        failed = self.failed_keys if section_filter is None else [k for k in section_filter if k in self.failed_keys]
        return GenerationResult(
            sections=[make_generated(key, self.texts.get(key)) for key in keys],
            failed_keys=list(failed),
        )


