"""Pytest configuration and shared fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest

from app.core.database import Base, build_engine, build_session_maker
from app.core.exceptions import APIClientError
from app.database.models import Project
from app.services.project_service import ProjectService
from app.services.workflow_service import InlineWorkflowRunner
from tests.helpers import FACT_FIND_TEXT, FakeContentGenerationClient


@pytest.fixture
async def engine():
    """In-memory SQLite engine with all tables created."""
    import app.database.models  # noqa: F401

    test_engine = build_engine("sqlite+aiosqlite://")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as db_session:
        yield db_session


@pytest.fixture
def fake_client() -> FakeContentGenerationClient:
    return FakeContentGenerationClient()


@pytest.fixture
def runner(session_maker, fake_client) -> InlineWorkflowRunner:
    """Runner that executes runs to completion inside ``submit``."""
    return InlineWorkflowRunner(
        session_factory=session_maker, generation_client=fake_client, background=False
    )


@pytest.fixture
async def project(session) -> Project:
    """Project with one extracted fact find document."""
    service = ProjectService(session)
    created = await service.create_project("Citizen SOA", client_name="Jane Citizen", owner_id="adviser-1")
    await service.add_document(created.id, "fact_find.pdf", FACT_FIND_TEXT, "fact_find")
    return created


@pytest.fixture
async def empty_project(session) -> Project:
    """Project without any source documents."""
    return await ProjectService(session).create_project("Empty SOA")



@pytest.fixture
def api_error() -> APIClientError:
    """Failure raised by the LLM transport after its retries are exhausted."""
    return APIClientError("OpenRouter returned 503 after 3 attempts")
