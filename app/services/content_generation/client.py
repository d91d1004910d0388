"""Content generation clients producing SOA sections from source documents."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from app.core.base_llm_client import BaseLLMClient
from app.core.config import settings
from app.core.exceptions import APIClientError, PreconditionError
from app.prompts.soa_prompts import (
    DOCUMENT_TEMPLATE,
    GENERATION_USER_PROMPT,
    SECTION_REQUEST_TEMPLATE,
    SOA_GENERATION_SYSTEM_PROMPT,
)
from app.schemas.soa import GeneratedSection, GenerationResult, SourceDocumentInput
from app.services.content_generation.quality import assess_document_quality
from app.services.section_templates import get_template, group_template_keys_into_batches
from app.utils.json_parser import parse_json_safely
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ContentGenerationClient(ABC):
    """Produces SOA section content from source documents.

    Implementations are expected to be unreliable: a call may fail outright
    or return only some of the requested sections. Keys that could not be
    produced are reported in ``GenerationResult.failed_keys``.
    """

    @abstractmethod
    async def generate_sections(
        self,
        project_id: UUID,
        documents: Sequence[SourceDocumentInput],
        section_filter: Optional[Sequence[str]] = None,
    ) -> GenerationResult:
        """Generate the catalogue sections, or only ``section_filter`` when given."""


class LLMContentGenerationClient(ContentGenerationClient):
    """Generates sections with an OpenRouter chat model, one call per batch of keys."""

    def __init__(
        self,
        llm_client: Optional[BaseLLMClient] = None,
        batch_size: Optional[int] = None,
        max_output_tokens: Optional[int] = None,
    ):
        """Initialize the generator.

        Args:
            llm_client: Chat completion client, built from settings when omitted
            batch_size: Number of sections requested per call
            max_output_tokens: Token limit for each completion
        """
        self.llm_client = llm_client or BaseLLMClient(
            api_key=settings.llm.openrouter_api_key,
            base_url=settings.llm.openrouter_api_url,
            model=settings.llm.openrouter_model,
            timeout=settings.llm.request_timeout,
            max_retries=settings.llm.max_retries,
            retry_delay=settings.llm.retry_delay,
            app_title=settings.app_name,
        )
        self.batch_size = batch_size or settings.llm.generation_batch_size
        self.max_output_tokens = max_output_tokens or settings.llm.max_output_tokens

    async def generate_sections(
        self,
        project_id: UUID,
        documents: Sequence[SourceDocumentInput],
        section_filter: Optional[Sequence[str]] = None,
    ) -> GenerationResult:
        if not documents:
            raise PreconditionError("No source documents with content to generate from")

        if section_filter is not None:
            # Unknown keys fail before any model call
            for key in section_filter:
                get_template(key)

        batches = group_template_keys_into_batches(self.batch_size, section_filter)
        document_block = self._build_document_block(documents)
        doc_ids_by_name = {doc.name: doc.id for doc in documents}

        result = GenerationResult()
        for index, batch in enumerate(batches):
            try:
                sections = await self._generate_batch(batch, document_block, doc_ids_by_name)
            except APIClientError as e:
                LOGGER.warning(
                    "Section batch generation failed",
                    extra={
                        "project_id": str(project_id),
                        "batch": index + 1,
                        "keys": batch,
                        "error": str(e),
                    }
                )
                result.failed_keys.extend(batch)
                continue

            produced = {section.section_key for section in sections}
            result.sections.extend(sections)
            result.failed_keys.extend(key for key in batch if key not in produced)

        LOGGER.info(
            "Section generation finished",
            extra={
                "project_id": str(project_id),
                "batches": len(batches),
                "generated": len(result.sections),
                "failed": len(result.failed_keys),
            }
        )
        return result

    async def _generate_batch(
        self,
        batch: List[str],
        document_block: str,
        doc_ids_by_name: Dict[str, str],
    ) -> List[GeneratedSection]:
        user_prompt = GENERATION_USER_PROMPT.format(
            section_requests="\n".join(self._describe_section(key) for key in batch),
            documents=document_block,
        )
        response_text = await self.llm_client.chat_completion(
            messages=[
                {"role": "system", "content": SOA_GENERATION_SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=self.max_output_tokens,
        )

        parsed = parse_json_safely(response_text)
        if isinstance(parsed, dict):
            items = parsed.get("sections")
        elif isinstance(parsed, list):
            items = parsed
        else:
            items = None
        if not isinstance(items, list):
            raise APIClientError("Generation response did not contain a sections list")

        wanted = set(batch)
        sections: List[GeneratedSection] = []
        for item in items:
            section = self._to_section(item, wanted, doc_ids_by_name)
            if section is not None:
                wanted.discard(section.section_key)
                sections.append(section)
        return sections

    def _to_section(
        self,
        item: Any,
        wanted: set,
        doc_ids_by_name: Dict[str, str],
    ) -> Optional[GeneratedSection]:
        if not isinstance(item, dict):
            return None

        key = item.get("section_key") or item.get("id")
        if key not in wanted:
            LOGGER.debug("Ignoring unrequested or repeated section", extra={"section_key": key})
            return None

        template = get_template(key)
        try:
            section = GeneratedSection.model_validate({
                "section_key": key,
                "title": item.get("title") or template.title,
                "content": item.get("content") or {},
                "sources": item.get("sources") or [],
                "missing_fields": item.get("missing_fields") or [],
            })
        except PydanticValidationError as e:
            LOGGER.warning(
                "Discarding malformed generated section",
                extra={"section_key": key, "error": str(e)}
            )
            return None

        for source in section.sources:
            if not source.source_doc_id:
                source.source_doc_id = doc_ids_by_name.get(source.source_doc_name)
        return section

    def _describe_section(self, key: str) -> str:
        template = get_template(key)
        headers_line = ""
        if template.table_headers:
            headers_line = f"\n  table headers: {', '.join(template.table_headers)}"
        return SECTION_REQUEST_TEMPLATE.format(
            key=template.key,
            title=template.title,
            content_type=template.content_type,
            description=template.description or "-",
            required_fields=", ".join(template.required_fields) or "none",
            headers_line=headers_line,
        )

    def _build_document_block(self, documents: Sequence[SourceDocumentInput]) -> str:
        blocks = []
        for doc in documents:
            quality = assess_document_quality(doc.text)
            quality_line = ""
            if quality.issues:
                quality_line = f"Quality notes: {'; '.join(quality.issues)}\n"
            blocks.append(DOCUMENT_TEMPLATE.format(
                name=doc.name,
                score=quality.score,
                quality_line=quality_line,
                text=doc.text,
            ))
        return "\n\n".join(blocks)
