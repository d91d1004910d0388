import pytest

from app.core.exceptions import (
    DuplicateSectionError,
    PreconditionError,
    SectionNotFoundError,
    TemplateNotFoundError,
)
from app.schemas.soa import SectionContent
from app.services.section_service import SectionService, resolve_parent_key
from app.services.versioning.version_service import VersionService
from tests.helpers import FakeContentGenerationClient, make_generated


class TestUpsertGenerated:

    async def test_bulk_replace_never_duplicates(self, session, project):
        service = SectionService(session)

        await service.upsert_generated(project.id, [make_generated("M1"), make_generated("M2")])
        created, rejected = await service.upsert_generated(
            project.id, [make_generated("M1", "Second pass"), make_generated("M3")]
        )

        sections = await service.list_sections(project.id)
        assert [s.section_key for s in sections] == ["M1", "M3"]
        assert sections[0].content == {"text": "Second pass"}
        assert len(created) == 2
        assert rejected == []

    async def test_duplicate_keys_keep_first(self, session, project):
        service = SectionService(session)

        created, _ = await service.upsert_generated(
            project.id, [make_generated("M1", "first"), make_generated("M1", "second")]
        )

        assert len(created) == 1
        assert created[0].content == {"text": "first"}

    async def test_unknown_keys_are_rejected(self, session, project):
        service = SectionService(session)

        created, rejected = await service.upsert_generated(
            project.id, [make_generated("M1"), make_generated("M99")]
        )

        assert [s.section_key for s in created] == ["M1"]
        assert rejected == ["M99"]

    async def test_parent_is_nearest_existing_ancestor(self, session, project):
        service = SectionService(session)

        await service.upsert_generated(
            project.id, [make_generated("M3"), make_generated("M3_S7_SS1"), make_generated("M4_S4")]
        )

        by_key = {s.section_key: s for s in await service.list_sections(project.id)}
        assert by_key["M3_S7_SS1"].parent_key == "M3"
        assert by_key["M4_S4"].parent_key is None
        assert by_key["M3"].status == "generated"


class TestSectionEdits:

    async def test_add_section_records_one_version(self, session, project):
        service = SectionService(session)
        await service.upsert_generated(project.id, [make_generated("M3")])

        section = await service.add_section(project.id, "M3_S2", author_id="adviser-1")

        assert section.parent_key == "M3"
        assert section.status == "pending"
        assert section.missing_fields
        history = await VersionService(session).get_history(project.id)
        assert len(history) == 1
        assert history[0]["summary"] == "Added section: M3_S2"

    async def test_add_duplicate_section(self, session, project):
        service = SectionService(session)
        await service.add_section(project.id, "M1")

        with pytest.raises(DuplicateSectionError):
            await service.add_section(project.id, "M1")

    async def test_add_unknown_template(self, session, project):
        with pytest.raises(TemplateNotFoundError):
            await SectionService(session).add_section(project.id, "M42")

    async def test_add_with_generated_content(self, session, project):
        service = SectionService(session, generation_client=FakeContentGenerationClient())

        section = await service.add_section(project.id, "M6", author_id="adviser-1", generate_content=True)

        assert section.status == "generated"
        assert section.content["text"].startswith("Content for M6")
        history = await VersionService(session).get_history(project.id)
        assert history[0]["summary"] == "Added section: M6 (with generated content)"

    async def test_add_falls_back_to_empty_when_generation_fails(self, session, project, api_error):
        client = FakeContentGenerationClient(error=api_error)
        service = SectionService(session, generation_client=client)

        section = await service.add_section(project.id, "M6", generate_content=True)

        assert section.status == "pending"
        assert section.content == {}

    async def test_update_marks_reviewed(self, session, project):
        service = SectionService(session)
        await service.upsert_generated(project.id, [make_generated("M1")])

        section = await service.update_content(
            project.id, "M1", SectionContent(bullets=["One", "Two"]), title="Introduction"
        )

        assert section.status == "reviewed"
        assert section.title == "Introduction"
        assert section.content == {"bullets": ["One", "Two"]}

    async def test_update_missing_section(self, session, project):
        with pytest.raises(SectionNotFoundError):
            await SectionService(session).update_content(project.id, "M1", SectionContent(text="x"))

    async def test_delete_cascades_to_descendants(self, session, project):
        service = SectionService(session)
        await service.upsert_generated(
            project.id,
            [make_generated(k) for k in ("M3", "M3_S7", "M3_S7_SS1", "M3_S2", "M4")],
        )

        deleted = await service.delete_section(project.id, "M3", author_id="adviser-1")

        assert deleted == ["M3", "M3_S2", "M3_S7", "M3_S7_SS1"]
        remaining = [s.section_key for s in await service.list_sections(project.id)]
        assert remaining == ["M4"]
        history = await VersionService(session).get_history(project.id)
        assert history[-1]["summary"] == "Deleted section: M3 and 3 subsection(s)"

    async def test_delete_missing_section(self, session, project):
        with pytest.raises(SectionNotFoundError):
            await SectionService(session).delete_section(project.id, "M1")


class TestRegenerate:

    async def test_regenerate_replaces_content(self, session, project):
        client = FakeContentGenerationClient(texts={"M2": "Fresh objectives"})
        service = SectionService(session, generation_client=client)
        await service.upsert_generated(project.id, [make_generated("M2", "Old objectives")])

        section = await service.regenerate_section(project.id, "M2", author_id="adviser-1")

        assert section.content == {"text": "Fresh objectives"}
        assert client.calls == [["M2"]]
        history = await VersionService(session).get_history(project.id)
        assert history[-1]["change_kind"] == "generation"

    async def test_regenerate_without_documents(self, session, empty_project):
        service = SectionService(session, generation_client=FakeContentGenerationClient())

        with pytest.raises(PreconditionError):
            await service.regenerate_section(empty_project.id, "M2")

    async def test_regenerate_without_client(self, session, project):
        with pytest.raises(PreconditionError):
            await SectionService(session).regenerate_section(project.id, "M2")

    async def test_regenerate_with_no_output(self, session, project):
        client = FakeContentGenerationClient(failed_keys=["M2"])
        service = SectionService(session, generation_client=client)

        with pytest.raises(PreconditionError):
            await service.regenerate_section(project.id, "M2")


def test_resolve_parent_key():
    assert resolve_parent_key("M4_S4_SS2", {"M4", "M4_S4"}) == "M4_S4"
    assert resolve_parent_key("M4_S4_SS2", {"M4"}) == "M4"
    assert resolve_parent_key("M4_S4_SS2", set()) is None
    assert resolve_parent_key("M1", {"M1"}) is None
