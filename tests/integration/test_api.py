"""Tests for API endpoints."""

from uuid import uuid4

import httpx
import pytest

from app.api.v1.dependencies import get_generation_client, get_workflow_runner
from app.core.database import get_async_session
from app.main import app
from tests.helpers import FACT_FIND_TEXT

PREFIX = "/api/v1/projects"
HEADERS = {"X-User-Id": "adviser-1"}


@pytest.fixture
async def client(session_maker, runner, fake_client):
    """HTTP client bound to the app with database and runner overrides.

    Args:
        session_maker: Session factory over the in-memory test database
        runner: Inline runner that completes runs inside the request
        fake_client: Content generator used by the runner and section routes
    """
    async def override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_workflow_runner] = lambda: runner
    app.dependency_overrides[get_generation_client] = lambda: fake_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


async def create_project(client: httpx.AsyncClient, with_document: bool = True) -> str:
    response = await client.post(PREFIX, json={"name": "Citizen SOA", "client_name": "Jane"}, headers=HEADERS)
    assert response.status_code == 201
    project_id = response.json()["data"]["id"]

    if with_document:
        response = await client.post(
            f"{PREFIX}/{project_id}/documents",
            json={"name": "fact_find.pdf", "extracted_text": FACT_FIND_TEXT, "document_type": "fact_find"},
        )
        assert response.status_code == 201
    return project_id


class TestProjectEndpoints:

    async def test_create_and_get_project(self, client):
        project_id = await create_project(client)

        response = await client.get(f"{PREFIX}/{project_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] is True
        assert body["data"]["owner_id"] == "adviser-1"
        assert body["data"]["status"] == "draft"
        assert body["data"]["documents"][0]["has_text"] is True

    async def test_unknown_project(self, client):
        response = await client.get(f"{PREFIX}/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "NotFoundError"

    async def test_invalid_body(self, client):
        response = await client.post(PREFIX, json={})

        assert response.status_code == 422

    async def test_list_update_and_delete(self, client):
        project_id = await create_project(client)
        await client.post(PREFIX, json={"name": "Other adviser"}, headers={"X-User-Id": "adviser-2"})

        response = await client.get(PREFIX, headers=HEADERS)
        assert [item["id"] for item in response.json()["data"]["items"]] == [project_id]

        response = await client.patch(f"{PREFIX}/{project_id}", json={"name": "Renamed", "status": "in_progress"})
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Renamed"
        assert response.json()["data"]["status"] == "in_progress"

        response = await client.patch(f"{PREFIX}/{project_id}", json={"status": "archived"})
        assert response.status_code == 422

        response = await client.delete(f"{PREFIX}/{project_id}")
        assert response.status_code == 200
        assert (await client.get(f"{PREFIX}/{project_id}")).status_code == 404
        assert (await client.delete(f"{PREFIX}/{project_id}")).status_code == 404


class TestWorkflowEndpoints:

    async def test_full_workflow(self, client):
        project_id = await create_project(client)

        response = await client.post(f"{PREFIX}/{project_id}/workflow/start", headers=HEADERS)
        assert response.status_code == 202
        assert response.json()["data"]["started"] is True

        response = await client.get(f"{PREFIX}/{project_id}/workflow")
        state = response.json()["data"]
        assert state["current_step"] == 4
        assert state["step_statuses"]["step4"] == "awaiting_approval"
        assert state["stuck"] is False

        response = await client.post(f"{PREFIX}/{project_id}/workflow/approve", json={"step": 4}, headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["data"]["next_step"] == 5

        response = await client.post(f"{PREFIX}/{project_id}/workflow/approve", json={"step": 5}, headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["data"]["project_status"] == "completed"

        response = await client.get(f"{PREFIX}/{project_id}/versions")
        items = response.json()["data"]["items"]
        assert [item["change_kind"] for item in items] == ["generation", "approval"]
        assert items[-1]["author_id"] == "adviser-1"

    async def test_second_start_is_a_noop(self, client, fake_client):
        project_id = await create_project(client)
        await client.post(f"{PREFIX}/{project_id}/workflow/start")

        response = await client.post(f"{PREFIX}/{project_id}/workflow/start")

        assert response.status_code == 202
        assert response.json()["data"]["started"] is False
        assert len(fake_client.calls) == 1

    async def test_reject_and_restart(self, client):
        project_id = await create_project(client)
        await client.post(f"{PREFIX}/{project_id}/workflow/start")

        response = await client.post(
            f"{PREFIX}/{project_id}/workflow/reject", json={"step": 4, "comments": "fix M5"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["step_statuses"]["step4"] == "failed"
        assert response.json()["data"]["comments"] == "fix M5"

        response = await client.post(f"{PREFIX}/{project_id}/workflow/start")
        assert response.json()["data"]["step_statuses"]["step4"] == "awaiting_approval"

    async def test_approve_out_of_order_conflicts(self, client):
        project_id = await create_project(client)
        await client.post(f"{PREFIX}/{project_id}/workflow/start")

        response = await client.post(f"{PREFIX}/{project_id}/workflow/approve", json={"step": 5})

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "WorkflowStateError"

    async def test_approve_non_approval_step(self, client):
        project_id = await create_project(client)

        response = await client.post(f"{PREFIX}/{project_id}/workflow/approve", json={"step": 3})

        assert response.status_code == 422

    async def test_reset_when_not_stuck(self, client):
        project_id = await create_project(client)
        await client.post(f"{PREFIX}/{project_id}/workflow/start")

        response = await client.post(f"{PREFIX}/{project_id}/workflow/reset")

        assert response.status_code == 409

    async def test_generation_without_documents_fails_step(self, client):
        project_id = await create_project(client, with_document=False)

        await client.post(f"{PREFIX}/{project_id}/workflow/start")
        response = await client.get(f"{PREFIX}/{project_id}/workflow")

        state = response.json()["data"]
        assert state["step_statuses"]["step2"] == "failed"
        assert "No source documents" in state["step_outputs"]["step2"]["error"]


class TestSectionAndVersionEndpoints:

    async def test_section_lifecycle(self, client):
        project_id = await create_project(client)
        await client.post(f"{PREFIX}/{project_id}/workflow/start")

        response = await client.get(f"{PREFIX}/{project_id}/sections")
        keys = [item["section_key"] for item in response.json()["data"]["items"]]
        assert keys == ["M1", "M2", "M5", "M8", "M9", "M10"]

        response = await client.get(f"{PREFIX}/{project_id}/sections/available")
        available = [item["key"] for item in response.json()["data"]["items"]]
        assert "M3" in available
        assert "M1" not in available

        response = await client.post(
            f"{PREFIX}/{project_id}/sections", json={"section_key": "M3"}, headers=HEADERS
        )
        assert response.status_code == 201

        response = await client.post(f"{PREFIX}/{project_id}/sections", json={"section_key": "M3"}, headers=HEADERS)
        assert response.status_code == 409

        response = await client.put(
            f"{PREFIX}/{project_id}/sections/M1",
            json={"content": {"text": "Edited introduction"}, "title": "Introduction"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "reviewed"

        response = await client.delete(f"{PREFIX}/{project_id}/sections/M3", headers=HEADERS)
        assert response.json()["data"]["deleted_keys"] == ["M3"]

        response = await client.get(f"{PREFIX}/{project_id}/versions")
        summaries = [item["summary"] for item in response.json()["data"]["items"]]
        assert summaries[1:] == ["Added section: M3", "Updated section: M1", "Deleted section: M3"]

    async def test_compare_and_rollback(self, client):
        project_id = await create_project(client)
        await client.post(f"{PREFIX}/{project_id}/workflow/start")
        await client.put(
            f"{PREFIX}/{project_id}/sections/M1", json={"content": {"text": "Edited"}}, headers=HEADERS
        )

        response = await client.get(f"{PREFIX}/{project_id}/versions/compare", params={"from": 1, "to": 2})
        assert response.status_code == 200
        assert response.json()["data"]["change_count"] > 0

        response = await client.get(f"{PREFIX}/{project_id}/versions/1")
        m1 = next(s for s in response.json()["data"]["sections"] if s["section_key"] == "M1")
        assert m1["content"]["text"].startswith("Content for M1")

        response = await client.post(f"{PREFIX}/{project_id}/versions/rollback", json={"version": 1}, headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["data"]["new_version"] == 3

        response = await client.get(f"{PREFIX}/{project_id}/sections")
        m1 = next(s for s in response.json()["data"]["items"] if s["section_key"] == "M1")
        assert m1["content"]["text"].startswith("Content for M1")

    async def test_unknown_version(self, client):
        project_id = await create_project(client)

        response = await client.get(f"{PREFIX}/{project_id}/versions/7")

        assert response.status_code == 404

    async def test_regenerate_section(self, client, fake_client):
        project_id = await create_project(client)
        await client.post(f"{PREFIX}/{project_id}/workflow/start")
        fake_client.texts["M2"] = "Regenerated objectives"

        response = await client.post(f"{PREFIX}/{project_id}/sections/M2/regenerate", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["data"]["content"] == {"text": "Regenerated objectives"}



class TestCommentEndpoints:

    async def test_comment_lifecycle(self, client):
        project_id = await create_project(client)
        await client.post(f"{PREFIX}/{project_id}/workflow/start")

        response = await client.post(
            f"{PREFIX}/{project_id}/comments",
            json={"section_key": "M5", "body": "Fee disclosure needs the ongoing fee"},
            headers={"X-User-Id": "paraplanner-1"},
        )
        assert response.status_code == 201
        comment = response.json()["data"]
        assert comment["status"] == "open"
        assert comment["author_id"] == "paraplanner-1"

        response = await client.patch(
            f"{PREFIX}/{project_id}/comments/{comment['id']}", json={"status": "resolved"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "resolved"

        response = await client.get(f"{PREFIX}/{project_id}/comments", params={"section_key": "M5"})
        items = response.json()["data"]["items"]
        assert [(item["section_key"], item["status"]) for item in items] == [("M5", "resolved")]

        response = await client.get(f"{PREFIX}/{project_id}/versions")
        assert len(response.json()["data"]["items"]) == 1

    async def test_comment_errors(self, client):
        project_id = await create_project(client)
        await client.post(f"{PREFIX}/{project_id}/workflow/start")

        response = await client.post(f"{PREFIX}/{project_id}/comments", json={"section_key": "M7", "body": "?"})
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "SectionNotFoundError"

        response = await client.post(f"{PREFIX}/{project_id}/comments", json={"section_key": "M1", "body": ""})
        assert response.status_code == 422

        response = await client.patch(f"{PREFIX}/{project_id}/comments/{uuid4()}", json={"status": "resolved"})
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "CommentNotFoundError"


async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["message"] == "Server is running"
