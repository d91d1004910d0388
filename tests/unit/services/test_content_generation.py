import json
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from app.core.base_llm_client import BaseLLMClient
from app.core.exceptions import APIClientError, PreconditionError, TemplateNotFoundError
from app.schemas.soa import SourceDocumentInput
from app.services.content_generation.client import LLMContentGenerationClient
from app.services.content_generation.quality import assess_document_quality
from tests.helpers import FACT_FIND_TEXT


@pytest.fixture
def documents():
    return [SourceDocumentInput(id="doc-1", name="fact_find.pdf", text=FACT_FIND_TEXT)]


@pytest.fixture
def llm_client():
    client = Mock(spec=BaseLLMClient)
    client.chat_completion = AsyncMock()
    return client


def response_for(*keys, **extra):
    sections = [
        {
            "section_key": key,
            "title": f"Title {key}",
            "content": {"text": f"Generated {key}", "tables": [{"headers": ["A"], "rows": [[1]]}]},
            "sources": [{"source_doc_name": "fact_find.pdf", "excerpt": "income"}],
            "missing_fields": [],
        }
        for key in keys
    ]
    return json.dumps({"sections": sections, **extra})


class TestLLMContentGenerationClient:

    async def test_generates_requested_sections(self, llm_client, documents):
        llm_client.chat_completion.return_value = response_for("M1", "M2")
        generator = LLMContentGenerationClient(llm_client=llm_client, batch_size=10)

        result = await generator.generate_sections(uuid4(), documents, ["M1", "M2"])

        assert [s.section_key for s in result.sections] == ["M1", "M2"]
        assert result.failed_keys == []
        assert result.sections[0].sources[0].source_doc_id == "doc-1"
        assert result.sections[0].content.tables[0].rows == [["1"]]
        llm_client.chat_completion.assert_awaited_once()

    async def test_missing_sections_are_reported_failed(self, llm_client, documents):
        llm_client.chat_completion.return_value = response_for("M1")
        generator = LLMContentGenerationClient(llm_client=llm_client, batch_size=10)

        result = await generator.generate_sections(uuid4(), documents, ["M1", "M2", "M5"])

        assert [s.section_key for s in result.sections] == ["M1"]
        assert result.failed_keys == ["M2", "M5"]

    async def test_unrequested_and_repeated_sections_are_dropped(self, llm_client, documents):
        llm_client.chat_completion.return_value = response_for("M1", "M1", "M9")
        generator = LLMContentGenerationClient(llm_client=llm_client, batch_size=10)

        result = await generator.generate_sections(uuid4(), documents, ["M1"])

        assert [s.section_key for s in result.sections] == ["M1"]

    async def test_failed_batch_does_not_fail_the_run(self, llm_client, documents):
        llm_client.chat_completion.side_effect = [
            response_for("M1", "M2"),
            APIClientError("rate limited"),
        ]
        generator = LLMContentGenerationClient(llm_client=llm_client, batch_size=2)

        result = await generator.generate_sections(uuid4(), documents, ["M1", "M2", "M5", "M8"])

        assert [s.section_key for s in result.sections] == ["M1", "M2"]
        assert result.failed_keys == ["M5", "M8"]
        assert llm_client.chat_completion.await_count == 2

    async def test_malformed_response_fails_the_batch(self, llm_client, documents):
        llm_client.chat_completion.return_value = "I could not produce the sections."
        generator = LLMContentGenerationClient(llm_client=llm_client, batch_size=10)

        result = await generator.generate_sections(uuid4(), documents, ["M1", "M2"])

        assert result.sections == []
        assert result.failed_keys == ["M1", "M2"]

    async def test_no_documents_fails_before_any_call(self, llm_client):
        generator = LLMContentGenerationClient(llm_client=llm_client)

        with pytest.raises(PreconditionError):
            await generator.generate_sections(uuid4(), [])
        llm_client.chat_completion.assert_not_awaited()

    async def test_unknown_filter_key_fails_before_any_call(self, llm_client, documents):
        generator = LLMContentGenerationClient(llm_client=llm_client)

        with pytest.raises(TemplateNotFoundError):
            await generator.generate_sections(uuid4(), documents, ["M77"])
        llm_client.chat_completion.assert_not_awaited()

    async def test_prompt_describes_sections_and_documents(self, llm_client, documents):
        llm_client.chat_completion.return_value = response_for("M3_S2")
        generator = LLMContentGenerationClient(llm_client=llm_client, batch_size=10)

        await generator.generate_sections(uuid4(), documents, ["M3_S2"])

        messages = llm_client.chat_completion.call_args.kwargs["messages"]
        user_prompt = messages[1]["content"]
        assert "M3_S2" in user_prompt
        assert "children_details" in user_prompt
        assert "fact_find.pdf" in user_prompt


class TestDocumentQuality:

    def test_rich_document_scores_high(self):
        text = (FACT_FIND_TEXT + " Review date 01/07/2024. ") * 4
        quality = assess_document_quality(text)

        assert quality.score == 1.0
        assert quality.issues == []
        assert not quality.is_low

    def test_poor_document_scores_low(self):
        quality = assess_document_quality("Notes [TBD]")

        assert quality.is_low
        assert quality.score == 0.05
        assert "Document contains placeholder or incomplete content markers" in quality.issues
