"""Section store: the hierarchical SOA section tree of a project."""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    DuplicateSectionError,
    PreconditionError,
    SectionNotFoundError,
    ValidationError,
)
from app.database.models import SoaSection
from app.repositories.section_repository import SectionRepository
from app.schemas.soa import GeneratedSection, SectionContent
from app.services.base_service import BaseService
from app.services.content_generation.client import ContentGenerationClient
from app.services.project_service import ProjectService
from app.services.section_templates import find_template, get_template, get_template_ancestors
from app.services.versioning.version_service import VersionService
from app.utils.logging import get_logger
from app.utils.section_keys import dedupe_by_key, sort_by_section_key

LOGGER = get_logger(__name__)


def resolve_parent_key(section_key: str, existing_keys: Set[str]) -> Optional[str]:
    """Nearest template ancestor of ``section_key`` present in ``existing_keys``."""
    for ancestor in get_template_ancestors(section_key):
        if ancestor in existing_keys:
            return ancestor
    return None


class SectionService(BaseService):
    """CRUD, bulk replacement and cascade deletion of SOA sections.

    Content-changing operations record one ``edit`` version when an author
    is given, so each logical change produces exactly one version row.
    """

    def __init__(
        self,
        session: AsyncSession,
        version_service: Optional[VersionService] = None,
        generation_client: Optional[ContentGenerationClient] = None,
    ):
        """Initialize section service.

        Args:
            session: Async database session
            version_service: Version log service, created on the same session when omitted
            generation_client: Generator used to regenerate or prefill sections
        """
        self.section_repo = SectionRepository(session)
        super().__init__(self.section_repo)
        self.session = session
        self.version_service = version_service or VersionService(session)
        self.generation_client = generation_client

    async def run(self, *args, **kwargs) -> Any:
        """Dispatch to a section operation based on ``action``."""
        action = kwargs.get("action")
        project_id = kwargs.get("project_id")

        if action == "list":
            return await self.list_sections(project_id)
        elif action == "add":
            return await self.add_section(
                project_id,
                kwargs.get("section_key"),
                content=kwargs.get("content"),
                author_id=kwargs.get("author_id"),
                generate_content=kwargs.get("generate_content", False),
            )
        elif action == "update":
            return await self.update_content(
                project_id,
                kwargs.get("section_key"),
                kwargs.get("content"),
                title=kwargs.get("title"),
                sources=kwargs.get("sources"),
                author_id=kwargs.get("author_id"),
            )
        elif action == "delete":
            return await self.delete_section(project_id, kwargs.get("section_key"), author_id=kwargs.get("author_id"))
        elif action == "regenerate":
            return await self.regenerate_section(project_id, kwargs.get("section_key"), kwargs.get("author_id"))
        else:
            raise ValidationError(f"Unknown action: {action}")

    # Read

    async def list_sections(self, project_id: UUID) -> List[SoaSection]:
        """Get the project's sections in deterministic section order."""
        sections = await self.section_repo.list_for_project(project_id)
        return sort_by_section_key(sections, key=lambda section: section.section_key)

    async def get_section(self, project_id: UUID, section_key: str) -> SoaSection:
        section = await self.section_repo.get_by_key(project_id, section_key)
        if section is None:
            raise SectionNotFoundError(f"Section {section_key} not found in project {project_id}")
        return section

    # Generation

    async def upsert_generated(
        self,
        project_id: UUID,
        generated: Sequence[GeneratedSection],
        commit: bool = True,
    ) -> Tuple[List[SoaSection], List[str]]:
        """Replace all sections of a project with a freshly generated set.

        Existing rows are deleted first so regeneration never duplicates a
        key. Repeated keys keep their first occurrence; keys with no
        catalogue template are rejected. With ``commit=False`` the caller
        holds the version service's ``content_lock`` and commits.

        Returns:
            Tuple of (created sections, rejected keys)
        """
        if commit:
            async with self.version_service.content_lock(project_id):
                created, rejected, deleted = await self._replace_sections(project_id, generated)
                await self.session.commit()
        else:
            created, rejected, deleted = await self._replace_sections(project_id, generated)

        LOGGER.info(
            "Generated sections stored",
            extra={
                "project_id": str(project_id),
                "replaced": deleted,
                "created_count": len(created),
                "rejected": len(rejected),
            }
        )
        return created, rejected

    async def _replace_sections(
        self,
        project_id: UUID,
        generated: Sequence[GeneratedSection],
    ) -> Tuple[List[SoaSection], List[str], int]:
        unique = dedupe_by_key(generated, key=lambda section: section.section_key)

        accepted: List[GeneratedSection] = []
        rejected: List[str] = []
        for section in unique:
            if find_template(section.section_key) is None:
                rejected.append(section.section_key)
            else:
                accepted.append(section)

        if rejected:
            LOGGER.warning(
                "Rejected generated sections without a template",
                extra={"project_id": str(project_id), "keys": rejected}
            )

        deleted = await self.section_repo.delete_all_for_project(project_id)

        keys = {section.section_key for section in accepted}
        rows = [
            self._row_from_generated(section, resolve_parent_key(section.section_key, keys))
            for section in accepted
        ]
        created = await self.section_repo.bulk_create(project_id, rows)
        return created, rejected, deleted

    async def apply_regenerated(
        self,
        project_id: UUID,
        generated: GeneratedSection,
        author_id: Optional[str] = None,
    ) -> SoaSection:
        """Store the regenerated content of one section, inserting it if absent."""
        template = get_template(generated.section_key)

        async with self.version_service.content_lock(project_id):
            section = await self.section_repo.get_by_key(project_id, generated.section_key)
            if section is None:
                existing = await self.section_repo.get_keys(project_id)
                row = self._row_from_generated(generated, resolve_parent_key(template.key, existing))
                section = (await self.section_repo.bulk_create(project_id, [row]))[0]
            else:
                section.title = generated.title or template.title
                section.content = generated.content.to_storage()
                section.sources = [source.to_storage() for source in generated.sources]
                section.missing_fields = list(generated.missing_fields)
                section.status = "generated"
                await self.session.flush()

            await self._record_version(
                project_id, author_id, "generation", f"Regenerated section: {generated.section_key}"
            )
        return section

    async def regenerate_section(self, project_id: UUID, section_key: str, author_id: Optional[str] = None) -> SoaSection:
        """Ask the generator for one section and store the result.

        Raises:
            PreconditionError: If no generator is configured, the project has no
                usable documents, or the generator produced nothing
        """
        get_template(section_key)
        if self.generation_client is None:
            raise PreconditionError("No content generation client configured")

        documents = await ProjectService(self.session).get_usable_documents(project_id)
        if not documents:
            raise PreconditionError("No source documents with content to generate from")

        result = await self.generation_client.generate_sections(project_id, documents, [section_key])
        generated = next((s for s in result.sections if s.section_key == section_key), None)
        if generated is None:
            raise PreconditionError(f"Content generation produced no content for {section_key}")

        return await self.apply_regenerated(project_id, generated, author_id=author_id)

    # Edit

    async def add_section(
        self,
        project_id: UUID,
        section_key: str,
        content: Optional[SectionContent] = None,
        author_id: Optional[str] = None,
        generate_content: bool = False,
    ) -> SoaSection:
        """Add one catalogue section to a project.

        Raises:
            TemplateNotFoundError: If the key is not in the catalogue
            DuplicateSectionError: If the section already exists
        """
        template = get_template(section_key)
        if section_key in await self.section_repo.get_keys(project_id):
            raise DuplicateSectionError(f"Section {section_key} already exists")

        generated = None
        if generate_content and content is None:
            generated = await self._try_generate(project_id, section_key)

        async with self.version_service.content_lock(project_id):
            existing = await self.section_repo.get_keys(project_id)
            if section_key in existing:
                raise DuplicateSectionError(f"Section {section_key} already exists")

            if generated is not None:
                row = self._row_from_generated(generated, resolve_parent_key(section_key, existing))
            else:
                row = {
                    "section_key": template.key,
                    "parent_key": resolve_parent_key(section_key, existing),
                    "title": template.title,
                    "content_type": template.content_type,
                    "content": content.to_storage() if content else {},
                    "sources": [],
                    "missing_fields": [] if content else list(template.required_fields),
                    "status": "pending",
                }

            section = (await self.section_repo.bulk_create(project_id, [row]))[0]
            suffix = " (with generated content)" if generated is not None else ""
            await self._record_version(project_id, author_id, "edit", f"Added section: {section_key}{suffix}")
        return section

    async def update_content(
        self,
        project_id: UUID,
        section_key: str,
        content: SectionContent,
        title: Optional[str] = None,
        sources: Optional[List[Dict[str, Any]]] = None,
        author_id: Optional[str] = None,
    ) -> SoaSection:
        """Replace a section's content; the section becomes ``reviewed``."""
        if content is None:
            raise ValidationError("content is required")

        async with self.version_service.content_lock(project_id):
            section = await self.get_section(project_id, section_key)
            section.content = content.to_storage()
            if title:
                section.title = title
            if sources is not None:
                section.sources = list(sources)
            section.status = "reviewed"
            await self.session.flush()

            await self._record_version(project_id, author_id, "edit", f"Updated section: {section_key}")
        return section

    async def delete_section(self, project_id: UUID, section_key: str, author_id: Optional[str] = None) -> List[str]:
        """Delete a section and every descendant in one operation.

        Returns:
            Deleted keys in section order
        """
        async with self.version_service.content_lock(project_id):
            await self.get_section(project_id, section_key)
            doomed = await self._collect_descendants(project_id, section_key)

            deleted = await self.section_repo.delete_by_keys(project_id, doomed)
            await self._record_version(
                project_id,
                author_id,
                "edit",
                f"Deleted section: {section_key}" + (f" and {len(doomed) - 1} subsection(s)" if len(doomed) > 1 else ""),
            )

        LOGGER.info(
            "Section deleted with descendants",
            extra={"project_id": str(project_id), "section_key": section_key, "deleted": deleted}
        )
        return sort_by_section_key(doomed, key=lambda key: key)

    async def set_all_status(self, project_id: UUID, status: str) -> int:
        """Set the status of every section without committing."""
        sections = await self.section_repo.list_for_project(project_id)
        for section in sections:
            section.status = status
        await self.session.flush()
        return len(sections)

    # Helpers

    async def _collect_descendants(self, project_id: UUID, section_key: str) -> List[str]:
        """Transitive closure over parent_key starting at ``section_key``."""
        collected = [section_key]
        seen = {section_key}
        frontier: Iterable[str] = [section_key]

        while frontier:
            children = await self.section_repo.get_children_keys(project_id, frontier)
            frontier = [key for key in children if key not in seen]
            seen.update(frontier)
            collected.extend(frontier)

        return collected

    async def _try_generate(self, project_id: UUID, section_key: str) -> Optional[GeneratedSection]:
        if self.generation_client is None:
            return None

        documents = await ProjectService(self.session).get_usable_documents(project_id)
        if not documents:
            return None

        try:
            result = await self.generation_client.generate_sections(project_id, documents, [section_key])
        except Exception as e:
            LOGGER.warning(
                "Content generation for new section failed, adding it empty",
                extra={"project_id": str(project_id), "section_key": section_key, "error": str(e)}
            )
            return None

        return next((s for s in result.sections if s.section_key == section_key), None)

    async def _record_version(self, project_id: UUID, author_id: Optional[str], change_kind: str, summary: str) -> None:
        """Append the edit's version when an author is given, then commit; runs inside ``content_lock``."""
        if author_id:
            await self.version_service.append_version(project_id, author_id, change_kind, summary)
        await self.session.commit()

    @staticmethod
    def _row_from_generated(section: GeneratedSection, parent_key: Optional[str]) -> Dict[str, Any]:
        template = get_template(section.section_key)
        return {
            "section_key": section.section_key,
            "parent_key": parent_key,
            "title": section.title or template.title,
            "content_type": template.content_type,
            "content": section.content.to_storage(),
            "sources": [source.to_storage() for source in section.sources],
            "missing_fields": list(section.missing_fields),
            "status": "generated",
        }
