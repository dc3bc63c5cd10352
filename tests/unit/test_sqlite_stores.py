import sqlite3
from datetime import datetime, timezone

import pytest
from conftest import StepClock, build_session, complete

from config.settings import Settings
from draft_lifecycle.engine import VersioningEngine
from draft_lifecycle.errors import (
    DraftNotFoundError,
    HistoryRewriteError,
    InterviewNotFoundError,
    VersionConflictError,
)
from draft_lifecycle.models import AdminTransitionRequest, AdminUser, InterviewContent, Stage
from storage.drafts import SqliteDraftRepository
from storage.sessions import SqliteSessionRepository


def test_migrate_creates_tables(tmp_db):
    conn = sqlite3.connect(tmp_db)
    try:
        names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    finally:
        conn.close()
    assert {"sessions", "interviews", "drafts", "draft_history"} <= names


def test_session_round_trip_and_result_recording():
    store = SqliteSessionRepository()
    store.save_session(build_session(ratings=(4.5, None)))

    loaded = store.get_session("s1")
    assert [i.id for i in loaded.interviews] == ["s1-i1", "s1-i2"]
    assert loaded.client_name == "Ada Lovelace"
    assert loaded.completed_interviews() == []

    when = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)
    updated = store.record_interview_result(
        "s1-i2", status="completed", content=InterviewContent(rating=3.5, summary="Done"), completed_at=when
    )
    assert updated.is_completed
    reloaded = store.get_interview("s1-i2")
    assert reloaded.content.rating == 3.5
    assert reloaded.completed_at == when

    with pytest.raises(InterviewNotFoundError):
        store.record_interview_result("ghost", status="error", error="boom")
    assert store.get_session("missing") is None


def _engine():
    return VersioningEngine(
        SqliteDraftRepository(), SqliteSessionRepository(), settings=Settings(_env_file=None), clock=StepClock()
    )


def test_engine_against_sqlite_stores():
    session = build_session(ratings=(4.5, 4.2, 3.9))
    sessions = SqliteSessionRepository()
    sessions.save_session(session)
    engine = _engine()

    first = engine.handle_completion(complete(session, 0))
    sessions.save_session(session)
    second = engine.handle_completion(complete(session, 1))
    assert first.action == "created"
    assert second.action == "updated"

    drafts = SqliteDraftRepository()
    stored = drafts.find_by_session("s1")
    assert stored.version == 2
    assert stored.revision == 2
    assert stored.stage is Stage.IN_PROGRESS
    assert stored.content.recommendations.overall_rating == 4.35
    assert [e.version for e in stored.history] == [1, 2]
    assert stored.history == second.draft.history

    outcome = engine.transition_draft_stage(
        stored.id, Stage.UNDER_REVIEW, AdminTransitionRequest(admin_user=AdminUser(id="admin-1"))
    )
    assert outcome.success
    reloaded = drafts.get(stored.id)
    assert reloaded.reviewed_by == "admin-1"
    assert reloaded.revision == 3
    assert len(reloaded.history) == 3
    assert len(drafts.list_drafts()) == 1


def test_sqlite_compare_and_swap_and_history_guard():
    session = build_session(ratings=(4.5, 4.2))
    SqliteSessionRepository().save_session(session)
    created = _engine().handle_completion(complete(session, 0)).draft

    drafts = SqliteDraftRepository()
    with pytest.raises(VersionConflictError):
        drafts.save(created.model_copy(update={"version": 2}), expected_revision=created.revision + 5)
    with pytest.raises(HistoryRewriteError):
        drafts.save(created.model_copy(update={"history": []}), expected_revision=created.revision)
    with pytest.raises(VersionConflictError):
        drafts.save(created.model_copy(update={"id": "other"}), expected_revision=None)
    assert drafts.get(created.id).revision == created.revision


class VanishingDrafts(SqliteDraftRepository):
    """Loses the row between the write and the read-back."""

    def _load(self, conn, row):
        return None


def test_save_raises_when_stored_draft_cannot_be_read_back():
    session = build_session(ratings=(4.5, 4.2))
    SqliteSessionRepository().save_session(session)
    created = _engine().handle_completion(complete(session, 0)).draft

    with pytest.raises(DraftNotFoundError):
        VanishingDrafts().save(created.model_copy(update={"version": 2}), expected_revision=created.revision)
