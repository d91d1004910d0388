import logging
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import SectionComment, SoaSection, SoaVersion, SourceDocument, WorkflowState
from app.services.comment_service import CommentService
from app.services.project_service import ProjectService
from app.services.workflow_service import WorkflowService


async def count_rows(session, model, project_id) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(model.project_id == project_id))
    return result.scalar_one()


class TestProjects:

    async def test_add_document_logs_document_name(self, session, empty_project, caplog):
        caplog.set_level(logging.INFO)

        document = await ProjectService(session).add_document(empty_project.id, "payslip.pdf", "Salary 95,000", "payslip")

        assert document.name == "payslip.pdf"
        added = [r for r in caplog.records if r.getMessage() == "Source document added"]
        assert len(added) == 1
        assert added[0].document_name == "payslip.pdf"

    async def test_list_only_own_projects(self, session, project):
        service = ProjectService(session)
        await service.create_project("Someone else's SOA", owner_id="adviser-2")

        mine = await service.list_projects("adviser-1")

        assert [p.name for p in mine] == ["Citizen SOA"]

    async def test_update_project(self, session, project):
        project_id = project.id

        updated = await ProjectService(session).update_project(
            project_id, name=" Citizen SOA 2026 ", client_name="Jane & John Citizen", status="in_progress"
        )

        assert updated.name == "Citizen SOA 2026"
        assert updated.client_name == "Jane & John Citizen"
        assert updated.status == "in_progress"

    @pytest.mark.parametrize(
        "changes", [{}, {"name": "  "}, {"status": "archived"}]
    )
    async def test_invalid_update(self, session, project, changes):
        with pytest.raises(ValidationError):
            await ProjectService(session).update_project(project.id, **changes)

    async def test_update_unknown_project(self, session):
        with pytest.raises(NotFoundError):
            await ProjectService(session).update_project(uuid4(), name="Ghost")

    async def test_delete_removes_everything_owned(self, session, project, runner):
        project_id = project.id
        await WorkflowService(session, runner=runner).start_or_resume(project_id)
        await CommentService(session).add_comment(project_id, "M1", "Check this", "planner-1")

        await ProjectService(session).delete_project(project_id)

        for model in (SourceDocument, WorkflowState, SoaSection, SoaVersion, SectionComment):
            assert await count_rows(session, model, project_id) == 0
        with pytest.raises(NotFoundError):
            await ProjectService(session).get_project(project_id)

    async def test_delete_unknown_project(self, session):
        with pytest.raises(NotFoundError):
            await ProjectService(session).delete_project(uuid4())
