"""Version control for SOA section trees.

Every content-changing operation appends one immutable version holding the
structural patch from the previous version's state. Replaying the log from
the empty tree reproduces the current section rows.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError, VersionNotFoundError
from app.database.models import SoaVersion
from app.repositories.project_repository import ProjectRepository
from app.repositories.section_repository import SectionRepository
from app.repositories.version_repository import VersionRepository
from app.services.base_service import BaseService
from app.services.versioning.patch import (
    VersionState,
    build_state,
    diff_states,
    replay_forward,
    state_to_list,
    unwind_backward,
)
from app.utils.locks import ProjectLockRegistry, project_locks
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

CHANGE_KINDS = ("generation", "edit", "approval")
LOCK_NAMESPACE = "versions"


class VersionService(BaseService):
    """Creates, reconstructs, compares and rolls back SOA versions.

    Reads and writes of one project's version log are serialised with a
    per-project lock so a reconstruction never sees a half-written log.
    """

    def __init__(self, session: AsyncSession, locks: Optional[ProjectLockRegistry] = None):
        """Initialize version service.

        Args:
            session: Async database session
            locks: Lock registry, defaults to the process-wide registry
        """
        self.version_repo = VersionRepository(session)
        super().__init__(self.version_repo)
        self.session = session
        self.section_repo = SectionRepository(session)
        self.project_repo = ProjectRepository(session)
        self.locks = locks or project_locks

    async def run(self, *args, **kwargs) -> Any:
        """Dispatch to a version operation based on ``action``."""
        action = kwargs.get("action")
        project_id = kwargs.get("project_id")

        if action == "create":
            return await self.create_version(
                project_id, kwargs.get("author_id"), kwargs.get("change_kind"), kwargs.get("summary")
            )
        elif action == "history":
            return await self.get_history(project_id)
        elif action == "content_at":
            return await self.get_content_at_version(project_id, kwargs.get("version"))
        elif action == "compare":
            return await self.compare_versions(project_id, kwargs.get("from_version"), kwargs.get("to_version"))
        elif action == "rollback":
            return await self.rollback_to_version(project_id, kwargs.get("version"), kwargs.get("author_id"))
        else:
            raise ValidationError(f"Unknown action: {action}")

    # Create

    @asynccontextmanager
    async def content_lock(self, project_id: UUID) -> AsyncIterator[None]:
        """Serialise content writes of one project until the caller commits.

        Holds the per-project lock and a ``SELECT ... FOR UPDATE`` on the
        project row. Writers change section rows, append their version and
        commit inside the block, so no other writer can compute its version
        number from a log that lacks an uncommitted version.
        """
        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            await self.project_repo.get_for_update(project_id)
            yield

    async def create_version(
        self,
        project_id: UUID,
        author_id: str,
        change_kind: str,
        summary: Optional[str] = None,
    ) -> SoaVersion:
        """Append a version capturing the change since the previous version and commit.

        Args:
            project_id: Project ID
            author_id: Acting user, or the system author for automated steps
            change_kind: generation | edit | approval
            summary: Human readable description of the change

        Returns:
            The new SoaVersion row
        """
        self._check_version_args(author_id, change_kind)
        async with self.content_lock(project_id):
            version = await self._create_version_locked(project_id, author_id, change_kind, summary)
            await self.session.commit()
            return version

    async def append_version(
        self,
        project_id: UUID,
        author_id: str,
        change_kind: str,
        summary: Optional[str] = None,
    ) -> SoaVersion:
        """Append a version without committing; the caller holds ``content_lock``."""
        self._check_version_args(author_id, change_kind)
        return await self._create_version_locked(project_id, author_id, change_kind, summary)

    @staticmethod
    def _check_version_args(author_id: str, change_kind: str) -> None:
        if change_kind not in CHANGE_KINDS:
            raise ValidationError(f"Invalid change kind: {change_kind}")
        if not author_id:
            raise ValidationError("author_id is required to create a version")

    async def _create_version_locked(
        self,
        project_id: UUID,
        author_id: str,
        change_kind: str,
        summary: Optional[str],
    ) -> SoaVersion:
        log = await self.version_repo.list_for_project(project_id)
        previous_state = replay_forward(version.patch for version in log)

        sections = await self.section_repo.list_for_project(project_id)
        current_state = build_state(sections)

        patch = diff_states(previous_state, current_state)
        version_number = (log[-1].version_number if log else 0) + 1

        version = await self.version_repo.append(
            project_id=project_id,
            version_number=version_number,
            patch=patch,
            author_id=author_id,
            change_kind=change_kind,
            summary=summary,
        )

        for section in sections:
            section.version = version_number
        await self.session.flush()

        LOGGER.info(
            "Version created",
            extra={
                "project_id": str(project_id),
                "version": version_number,
                "change_kind": change_kind,
                "operations": len(patch),
            }
        )
        return version

    # Read

    async def get_history(self, project_id: UUID) -> List[Dict[str, Any]]:
        """Get the version log, oldest first, without patch bodies."""
        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            log = await self.version_repo.list_for_project(project_id)

        return [
            {
                "version": version.version_number,
                "change_kind": version.change_kind,
                "summary": version.summary,
                "author_id": version.author_id,
                "created_at": version.created_at,
                "patch_size": len(version.patch or []),
            }
            for version in log
        ]

    async def get_content_at_version(self, project_id: UUID, target: int) -> List[Dict[str, Any]]:
        """Get the versionable sections as of ``target``, in section order.

        Raises:
            VersionNotFoundError: If the project has no history or target < 1
        """
        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            state = await self._state_at(project_id, target)
        return state_to_list(state)

    async def reconstruct_forward(self, project_id: UUID, target: int) -> VersionState:
        """Rebuild the state at ``target`` by replaying versions 1..target."""
        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            log = await self._load_log(project_id, target)
            return replay_forward(version.patch for version in log if version.version_number <= target)

    async def reconstruct_backward(self, project_id: UUID, target: int) -> VersionState:
        """Rebuild the state at ``target`` by undoing newer versions from the current rows."""
        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            return await self._unwind_to(project_id, target)

    async def compare_versions(self, project_id: UUID, from_version: int, to_version: int) -> Dict[str, Any]:
        """Diff two reconstructed versions.

        The patch is computed fresh from both states rather than by
        concatenating the stored patches in between.
        """
        async with self.locks.hold(LOCK_NAMESPACE, project_id):
            from_state = await self._state_at(project_id, from_version)
            to_state = await self._state_at(project_id, to_version)

        patch = diff_states(from_state, to_state)
        return {
            "from_version": from_version,
            "to_version": to_version,
            "patch": patch,
            "change_count": len(patch),
        }

    # Rollback

    async def rollback_to_version(self, project_id: UUID, target: int, author_id: str) -> Dict[str, Any]:
        """Restore section content from ``target`` as a new forward version.

        Sections that exist now and existed at ``target`` get their title,
        content, sources and status back. Sections missing from either side
        are left as they are.

        Returns:
            Dict with the new version number and the restored and skipped keys
        """
        if not author_id:
            raise ValidationError("author_id is required to roll back")

        async with self.content_lock(project_id):
            target_state = await self._state_at(project_id, target)
            sections = await self.section_repo.list_for_project(project_id)
            current_keys = {section.section_key for section in sections}

            restored: List[str] = []
            for section in sections:
                snapshot = target_state.get(section.section_key)
                if snapshot is None:
                    continue
                section.title = snapshot["title"]
                section.content = snapshot["content"]
                section.sources = snapshot["sources"]
                section.status = snapshot["status"]
                restored.append(section.section_key)

            skipped = sorted(key for key in target_state if key not in current_keys)
            await self.session.flush()

            version = await self._create_version_locked(
                project_id, author_id, "edit", f"Rollback to version {target}"
            )
            await self.session.commit()

        LOGGER.info(
            "Rolled back project content",
            extra={
                "project_id": str(project_id),
                "target_version": target,
                "new_version": version.version_number,
                "restored": len(restored),
                "skipped": len(skipped),
            }
        )
        return {
            "new_version": version.version_number,
            "target_version": target,
            "restored_keys": restored,
            "skipped_keys": skipped,
        }

    # Internals (callers hold the project lock)

    async def _load_log(self, project_id: UUID, target: int) -> List[SoaVersion]:
        log = await self.version_repo.list_for_project(project_id)
        if not log:
            raise VersionNotFoundError(f"Project {project_id} has no version history")
        if target is None or target < 1:
            raise VersionNotFoundError(f"Version {target} does not exist for project {project_id}")
        return log

    async def _current_state(self, project_id: UUID) -> VersionState:
        sections = await self.section_repo.list_for_project(project_id)
        return build_state(sections)

    async def _unwind_to(self, project_id: UUID, target: int) -> VersionState:
        log = await self._load_log(project_id, target)
        current = await self._current_state(project_id)
        newer = [version.patch for version in reversed(log) if version.version_number > target]
        return unwind_backward(current, newer)

    async def _state_at(self, project_id: UUID, target: int) -> VersionState:
        log = await self._load_log(project_id, target)
        if target >= log[-1].version_number:
            return await self._current_state(project_id)
        return await self._unwind_to(project_id, target)
