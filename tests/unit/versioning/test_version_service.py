import asyncio

import pytest

from app.core.exceptions import ValidationError, VersionNotFoundError
from app.schemas.soa import SectionContent
from app.services.section_service import SectionService
from app.services.versioning.patch import build_state, state_to_list
from app.services.versioning.version_service import VersionService
from tests.helpers import make_generated


async def seed_history(session, project_id):
    """Three versions: generation of M1/M2/M5, an edit of M1, an added M3."""
    sections = SectionService(session)
    versions = VersionService(session)

    await sections.upsert_generated(project_id, [make_generated(k) for k in ("M1", "M2", "M5")], commit=False)
    await versions.create_version(project_id, "system", "generation", "Generated 3 section(s)")

    await sections.update_content(project_id, "M1", SectionContent(text="Edited intro"), author_id="adviser-1")
    await sections.add_section(project_id, "M3", author_id="adviser-1")
    return versions


class TestVersionService:

    async def test_history_is_ordered_and_summarised(self, session, project):
        versions = await seed_history(session, project.id)

        history = await versions.get_history(project.id)

        assert [entry["version"] for entry in history] == [1, 2, 3]
        assert [entry["change_kind"] for entry in history] == ["generation", "edit", "edit"]
        assert history[1]["summary"] == "Updated section: M1"
        assert history[0]["patch_size"] == 3

    async def test_empty_history(self, session, project):
        versions = VersionService(session)

        assert await versions.get_history(project.id) == []
        with pytest.raises(VersionNotFoundError):
            await versions.get_content_at_version(project.id, 1)

    async def test_content_at_version(self, session, project):
        versions = await seed_history(session, project.id)

        v1 = await versions.get_content_at_version(project.id, 1)
        v2 = await versions.get_content_at_version(project.id, 2)
        latest = await versions.get_content_at_version(project.id, 99)

        assert [s["section_key"] for s in v1] == ["M1", "M2", "M5"]
        assert v1[0]["content"]["text"] != "Edited intro"
        assert v2[0]["content"] == {"text": "Edited intro"}
        assert [s["section_key"] for s in latest] == ["M1", "M2", "M3", "M5"]

    async def test_version_below_one_is_not_found(self, session, project):
        versions = await seed_history(session, project.id)

        with pytest.raises(VersionNotFoundError):
            await versions.get_content_at_version(project.id, 0)

    async def test_forward_and_backward_reconstruction_agree(self, session, project):
        versions = await seed_history(session, project.id)

        for target in (1, 2, 3):
            forward = await versions.reconstruct_forward(project.id, target)
            backward = await versions.reconstruct_backward(project.id, target)
            assert forward == backward

    async def test_compare_versions(self, session, project):
        versions = await seed_history(session, project.id)

        result = await versions.compare_versions(project.id, 1, 3)

        assert result["change_count"] == 3
        paths = [op["path"] for op in result["patch"]]
        assert "/M3" in paths
        assert "/M1/content" in paths
        assert "/M1/status" in paths

    async def test_compare_same_version_is_empty(self, session, project):
        versions = await seed_history(session, project.id)

        result = await versions.compare_versions(project.id, 2, 2)

        assert result["patch"] == []
        assert result["change_count"] == 0

    async def test_rollback_creates_new_version(self, session, project):
        versions = await seed_history(session, project.id)

        result = await versions.rollback_to_version(project.id, 1, "adviser-2")

        assert result["new_version"] == 4
        assert result["target_version"] == 1
        assert sorted(result["restored_keys"]) == ["M1", "M2", "M5"]
        assert result["skipped_keys"] == []

        history = await versions.get_history(project.id)
        assert history[-1]["summary"] == "Rollback to version 1"
        assert history[-1]["author_id"] == "adviser-2"

        current = {s["section_key"]: s for s in await versions.get_content_at_version(project.id, 4)}
        original = {s["section_key"]: s for s in await versions.get_content_at_version(project.id, 1)}
        assert current["M1"] == original["M1"]
        # Sections added after the target stay in place
        assert "M3" in current

    async def test_rollback_skips_deleted_sections(self, session, project):
        versions = await seed_history(session, project.id)
        await SectionService(session).delete_section(project.id, "M2", author_id="adviser-1")

        result = await versions.rollback_to_version(project.id, 1, "adviser-1")

        assert result["skipped_keys"] == ["M2"]
        assert "M2" not in result["restored_keys"]

    async def test_create_version_stamps_sections(self, session, project):
        await seed_history(session, project.id)

        sections = await SectionService(session).list_sections(project.id)

        assert {section.version for section in sections} == {3}

    async def test_invalid_change_kind(self, session, project):
        with pytest.raises(ValidationError):
            await VersionService(session).create_version(project.id, "adviser-1", "publish")

    async def test_author_required(self, session, project):
        with pytest.raises(ValidationError):
            await VersionService(session).create_version(project.id, "", "edit")


class TestHistoryRoundTrip:

    async def test_every_version_reproduces_its_snapshot(self, session, project):
        project_id = project.id
        sections = SectionService(session)
        versions = VersionService(session)
        snapshots = {}

        async def snapshot():
            history = await versions.get_history(project_id)
            snapshots[history[-1]["version"]] = build_state(await sections.list_sections(project_id))

        await sections.upsert_generated(project_id, [make_generated(k) for k in ("M1", "M2", "M5")], commit=False)
        await versions.create_version(project_id, "system", "generation", "Generated 3 section(s)")
        await snapshot()
        await sections.add_section(project_id, "M3", content=SectionContent(text="Client details"), author_id="adviser-1")
        await snapshot()
        await sections.add_section(project_id, "M3_S1", author_id="adviser-1")
        await snapshot()
        await sections.update_content(project_id, "M1", SectionContent(bullets=["Scope", "Limits"]), author_id="adviser-1")
        await snapshot()
        deleted = await sections.delete_section(project_id, "M3", author_id="adviser-1")
        await snapshot()
        await versions.rollback_to_version(project_id, 2, "adviser-2")
        await snapshot()
        await sections.update_content(project_id, "M2", SectionContent(text="Revised objectives"), author_id="adviser-2")
        await snapshot()

        assert deleted == ["M3", "M3_S1"]
        assert sorted(snapshots) == [1, 2, 3, 4, 5, 6, 7]
        assert "M3_S1" in snapshots[3] and "M3" not in snapshots[5]
        assert snapshots[6]["M1"]["content"] == snapshots[2]["M1"]["content"]

        for version, expected in snapshots.items():
            assert await versions.get_content_at_version(project_id, version) == state_to_list(expected)
            forward = await versions.reconstruct_forward(project_id, version)
            backward = await versions.reconstruct_backward(project_id, version)
            assert forward == expected
            assert backward == expected


class TestContentLock:

    async def test_edit_waits_for_uncommitted_generation_version(self, session_maker, project):
        project_id = project.id
        async with session_maker() as generating, session_maker() as editing:
            versions = VersionService(generating)
            sections = SectionService(generating, version_service=versions)

            async with versions.content_lock(project_id):
                await sections.upsert_generated(project_id, [make_generated("M1"), make_generated("M2")], commit=False)
                await versions.append_version(project_id, "system", "generation", "Generated 2 section(s)")

                edit = asyncio.create_task(
                    SectionService(editing).update_content(
                        project_id, "M1", SectionContent(text="Edited intro"), author_id="adviser-1"
                    )
                )
                await asyncio.sleep(0.05)
                assert not edit.done()
                await generating.commit()

            await edit
            history = await VersionService(editing).get_history(project_id)

        assert [(entry["version"], entry["change_kind"]) for entry in history] == [(1, "generation"), (2, "edit")]
