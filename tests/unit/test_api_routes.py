from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from conftest import build_session

from api.routes import get_engine
from api_server import app
from draft_lifecycle.errors import HistoryRewriteError, StageTransitionError, VersionConflictError
from storage.sessions import SqliteSessionRepository

ADMIN = {"id": "admin-1", "name": "Reviewer", "email": "reviewer@example.com"}


def _client_with_draft(completed: int = 2):
    SqliteSessionRepository().save_session(build_session(ratings=(4.5, 4.2, 3.9)))
    client = TestClient(app)
    draft_id = None
    for index in range(completed):
        resp = client.post(
            "/api/webhooks/draft-complete",
            json={
                "interviewId": f"s1-i{index + 1}",
                "success": True,
                "draft": {"rating": [4.5, 4.2, 3.9][index], "summary": f"Part {index + 1}"},
            },
        )
        assert resp.status_code == 200, resp.text
        draft_id = resp.json()["completion"]["draft"]["id"]
    return client, draft_id


def test_webhook_then_list_and_get():
    client, draft_id = _client_with_draft()

    listing = client.get("/api/admin/drafts", params={"stage": "in_progress"})
    assert listing.status_code == 200
    body = listing.json()
    assert body["total"] == 1
    assert body["items"][0]["id"] == draft_id

    detail = client.get(f"/api/admin/drafts/{draft_id}")
    assert detail.status_code == 200
    assert detail.json()["version"] == 2

    assert client.get("/api/admin/drafts/missing").status_code == 404
    assert client.get("/api/admin/drafts", params={"progress": "huge"}).status_code == 400


def test_stage_change_success_and_conflict():
    client, draft_id = _client_with_draft()

    refused = client.put(f"/api/admin/drafts/{draft_id}/stage", json={"stage": "approved", "admin_user": ADMIN})
    assert refused.status_code == 409
    assert refused.json()["detail"]["validation"]["valid"] is False

    ok = client.put(f"/api/admin/drafts/{draft_id}/stage", json={"stage": "under_review", "admin_user": ADMIN})
    assert ok.status_code == 200
    assert ok.json()["draft"]["reviewed_by"] == "admin-1"

    missing_admin = client.put(f"/api/admin/drafts/{draft_id}/stage", json={"stage": "pending_approval"})
    assert missing_admin.status_code == 422

    history = client.get(f"/api/admin/drafts/{draft_id}/history", params={"triggered_by": "admin-1"})
    assert history.status_code == 200
    assert [e["to_stage"] for e in history.json()] == ["under_review"]


def test_transitions_metadata_and_export():
    client, draft_id = _client_with_draft()

    transitions = client.get(f"/api/admin/drafts/{draft_id}/transitions", params={"admin_id": "admin-1"})
    assert transitions.status_code == 200
    assert {t["stage"] for t in transitions.json()} == {"pending_review", "under_review", "first_draft"}

    meta = client.get("/api/admin/stages/approved")
    assert meta.json()["icon"] == "CheckCircle"
    assert client.get("/api/admin/stages/whatever").json()["description"] == "Unknown stage"

    exported = client.post(f"/api/admin/drafts/{draft_id}/export", json={"format": "pdf"})
    assert exported.status_code == 200
    assert exported.headers["content-type"] == "application/pdf"
    assert exported.content.startswith(b"%PDF")
    assert client.post(f"/api/admin/drafts/{draft_id}/export", json={"format": "docx"}).status_code == 422


def test_webhook_for_unknown_interview_is_404():
    client = TestClient(app)
    resp = client.post("/api/webhooks/draft-complete", json={"interviewId": "ghost", "success": False})
    assert resp.status_code == 404
    assert client.get("/api/webhooks/health").json()["success"] is True


class RefusingEngine:
    def __init__(self, error):
        self.error = error

    def handle_completion(self, interview):
        raise self.error


@pytest.mark.parametrize(
    "error",
    [
        StageTransitionError("Invalid stage transition", reason="readiness"),
        VersionConflictError("s1", 2, 3),
        HistoryRewriteError("History of draft 'd1' may only be extended"),
    ],
)
def test_webhook_engine_conflicts_are_409(error):
    SqliteSessionRepository().save_session(build_session(ratings=(4.5, 4.2)))
    app.dependency_overrides[get_engine] = lambda: RefusingEngine(error)
    try:
        resp = TestClient(app).post(
            "/api/webhooks/draft-complete",
            json={"interviewId": "s1-i1", "success": True, "draft": {"rating": 4.5, "summary": "Part 1"}},
        )
    finally:
        app.dependency_overrides.pop(get_engine, None)
    assert resp.status_code == 409
    assert resp.json()["detail"] == str(error)
