"""SOA workflow step definitions and step handlers.

Six ordered steps drive a project from source documents to an approved
Statement of Advice:

1. Parse: source documents are ready (ingestion happens upstream)
2. Generate: sections are generated and bulk-replaced
3. Validate: advisory compliance checks
4. Await Approval #1: paraplanner sign-off
5. Await Approval #2: financial planner sign-off
6. Finalize: sections approved and a final version recorded

Handlers only read and write through the session they are given; the
workflow engine owns status transitions, locks and commits. The content
generation call of step 2 runs in ``prepare``, before any lock is taken.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError, PreconditionError, StepExecutionError
from app.repositories.project_repository import ProjectRepository
from app.schemas.soa import GenerationResult
from app.services.compliance_validator import ComplianceValidator
from app.services.content_generation.client import ContentGenerationClient
from app.services.content_generation.quality import assess_document_quality
from app.services.project_service import ProjectService
from app.services.section_service import SectionService
from app.services.versioning.version_service import VersionService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Step status vocabulary (wire level, case sensitive)
PENDING = "pending"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
FAILED = "failed"
AWAITING_APPROVAL = "awaiting_approval"

STEP_STATUSES = (PENDING, IN_PROGRESS, COMPLETED, FAILED, AWAITING_APPROVAL)

PARSE, GENERATE, VALIDATE, APPROVAL_1, APPROVAL_2, FINALIZE = 1, 2, 3, 4, 5, 6
STEPS = (PARSE, GENERATE, VALIDATE, APPROVAL_1, APPROVAL_2, FINALIZE)
APPROVAL_STEPS = (APPROVAL_1, APPROVAL_2)

STEP_NAMES: Dict[int, str] = {
    PARSE: "Parse",
    GENERATE: "Generate",
    VALIDATE: "Validate",
    APPROVAL_1: "Await Approval #1 (paraplanner)",
    APPROVAL_2: "Await Approval #2 (financial planner)",
    FINALIZE: "Finalize",
}


def step_key(step: int) -> str:
    return f"step{step}"


def initial_statuses() -> Dict[str, str]:
    return {step_key(step): PENDING for step in STEPS}


def compute_current_step(statuses: Dict[str, str]) -> int:
    """Highest step index whose status is not pending, 1 when all are pending."""
    current = 1
    for step in STEPS:
        if statuses.get(step_key(step), PENDING) != PENDING:
            current = step
    return current


def first_unfinished_step(statuses: Dict[str, str]) -> Optional[int]:
    for step in STEPS:
        if statuses.get(step_key(step)) != COMPLETED:
            return step
    return None


class StepOutcome(BaseModel):
    """What a step handler produced."""

    status: str = COMPLETED
    message: str = ""
    output: Dict[str, Any] = Field(default_factory=dict)


class SoaStepHandlers:
    """Executes the work of each SOA workflow step against one session."""

    def __init__(
        self,
        session: AsyncSession,
        generation_client: Optional[ContentGenerationClient] = None,
        version_service: Optional[VersionService] = None,
        validator: Optional[ComplianceValidator] = None,
    ):
        self.session = session
        self.generation_client = generation_client
        self.version_service = version_service or VersionService(session)
        self.section_service = SectionService(session, version_service=self.version_service)
        self.project_service = ProjectService(session)
        self.project_repo = ProjectRepository(session)
        self.validator = validator or ComplianceValidator()

    async def prepare(self, step: int, project_id: UUID) -> Optional[GenerationResult]:
        """Run the slow, read-only part of a step before any lock is taken.

        Only Generate has one: the content generation call.
        """
        if step == GENERATE:
            return await self.generate_content(project_id)
        return None

    async def handle(
        self,
        step: int,
        project_id: UUID,
        user_id: Optional[str] = None,
        prepared: Optional[GenerationResult] = None,
    ) -> StepOutcome:
        """Apply a step; the caller holds the version service's ``content_lock``."""
        if step == PARSE:
            return await self.parse(project_id)
        elif step == GENERATE:
            if prepared is None:
                prepared = await self.generate_content(project_id)
            return await self.store_generated(project_id, prepared)
        elif step == VALIDATE:
            return await self.validate(project_id)
        elif step in APPROVAL_STEPS:
            return await self.await_approval(project_id, step)
        elif step == FINALIZE:
            return await self.finalize(project_id, user_id)
        raise StepExecutionError(step, f"Unknown workflow step {step}")

    async def parse(self, project_id: UUID) -> StepOutcome:
        """Check that the project has usable source documents and score them."""
        documents = await self._require_documents(project_id)
        scores = [assess_document_quality(doc.text).score for doc in documents]
        quality = round(sum(scores) / len(scores), 4)

        if quality < 0.5:
            LOGGER.warning(
                "Low source document quality, proceeding",
                extra={"project_id": str(project_id), "quality": quality}
            )

        return StepOutcome(
            message=f"{len(documents)} document(s) ready",
            output={"documents": len(documents), "quality_score": quality},
        )

    async def generate_content(self, project_id: UUID) -> GenerationResult:
        """Generate all sections; a result with no sections fails the step."""
        documents = await self._require_documents(project_id)
        if self.generation_client is None:
            raise PreconditionError("No content generation client configured")

        result = await self.generation_client.generate_sections(project_id, documents)
        if not result.sections:
            raise StepExecutionError(
                GENERATE,
                f"Content generation produced no sections ({len(result.failed_keys)} failed)",
            )
        return result

    async def store_generated(self, project_id: UUID, result: GenerationResult) -> StepOutcome:
        """Bulk-replace the project's section tree with generated content.

        Partial results complete the step with a deficiency count.
        """
        created, rejected = await self.section_service.upsert_generated(
            project_id, result.sections, commit=False
        )
        if not created:
            raise StepExecutionError(GENERATE, "Content generation produced no usable sections")

        version = await self.version_service.append_version(
            project_id,
            settings.workflow.system_author_id,
            "generation",
            f"Generated {len(created)} section(s)",
        )

        failed_keys: List[str] = list(result.failed_keys) + rejected
        if failed_keys:
            LOGGER.warning(
                "Partial section generation, continuing",
                extra={"project_id": str(project_id), "failed_keys": failed_keys}
            )

        return StepOutcome(
            message=f"Generated {len(created)} section(s), {len(failed_keys)} failed",
            output={
                "generated": len(created),
                "failed_keys": failed_keys,
                "deficiency_count": len(failed_keys),
                "version": version.version_number,
            },
        )

    async def validate(self, project_id: UUID) -> StepOutcome:
        """Run the advisory compliance checks; findings never fail the step."""
        sections = await self.section_service.list_sections(project_id)
        report = self.validator.validate(sections)
        return StepOutcome(
            message=(
                f"{len(report.critical_issues)} critical issue(s), "
                f"{len(report.warnings)} warning(s)"
            ),
            output={
                "critical_issues": report.critical_issues,
                "warnings": report.warnings,
            },
        )

    async def await_approval(self, project_id: UUID, step: int) -> StepOutcome:
        """Suspend the run until an approval decision arrives."""
        project = await self._get_project(project_id)
        await self.project_repo.set_status(project, "review")
        return StepOutcome(status=AWAITING_APPROVAL, message=f"Waiting for {STEP_NAMES[step]}")

    async def finalize(self, project_id: UUID, approver_id: Optional[str] = None) -> StepOutcome:
        """Approve every section, record the final version and complete the project."""
        project = await self._get_project(project_id)

        count = await self.section_service.set_all_status(project_id, "approved")
        version = await self.version_service.append_version(
            project_id,
            approver_id or settings.workflow.system_author_id,
            "approval",
            "Final approved version",
        )
        await self.project_repo.set_status(project, "completed")

        return StepOutcome(
            message=f"Finalized version {version.version_number}",
            output={"version": version.version_number, "sections": count},
        )

    async def _require_documents(self, project_id: UUID):
        documents = await self.project_service.get_usable_documents(project_id)
        if not documents:
            raise PreconditionError(
                "No source documents with extracted content. Upload documents before generating."
            )
        return documents

    async def _get_project(self, project_id: UUID):
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        return project
