from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from draft_lifecycle.history import HistoryRecorder, filter_history, is_extension
from draft_lifecycle.models import AdminUser, HistoryFilters, Stage


def _recorder():
    ticks = iter(range(100))
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ids = iter(f"h{i}" for i in range(100))
    return HistoryRecorder(clock=lambda: start + timedelta(hours=next(ticks)), id_factory=lambda: next(ids))


def test_automatic_entry_is_attributed_to_system():
    entry = _recorder().record("created", None, Stage.FIRST_DRAFT, version=1, interview_count=1)
    assert entry.triggered_by == "system"
    assert entry.automatic is True
    assert entry.metadata.transition_type == "automatic"
    assert entry.metadata.from_stage_info is None
    assert entry.metadata.to_stage_info.icon == "FileText"
    assert entry.reason == "Draft created in stage first_draft"


def test_manual_entry_is_attributed_to_admin():
    admin = AdminUser(id="admin-7", name="Ops")
    entry = _recorder().record(
        "manual_stage_transition", Stage.PENDING_REVIEW, Stage.UNDER_REVIEW, version=3, admin_user=admin
    )
    assert entry.triggered_by == "admin-7"
    assert entry.automatic is False
    assert entry.admin_user == admin
    assert entry.metadata.transition_type == "manual"


def test_entries_are_frozen():
    entry = _recorder().record("created", None, Stage.FIRST_DRAFT, version=1)
    with pytest.raises(ValidationError):
        entry.reason = "rewritten"


def test_append_returns_new_list():
    recorder = _recorder()
    first = recorder.record("created", None, Stage.FIRST_DRAFT, version=1)
    history = [first]
    extended = recorder.append(history, recorder.record("version_updated", Stage.FIRST_DRAFT, Stage.IN_PROGRESS, version=2))
    assert len(history) == 1
    assert len(extended) == 2
    assert is_extension(history, extended)
    assert not is_extension(extended, history)
    assert not is_extension(extended, [extended[1], extended[0]])


def test_filter_history_newest_first_with_filters():
    recorder = _recorder()
    admin = AdminUser(id="admin-1")
    history = [
        recorder.record("created", None, Stage.FIRST_DRAFT, version=1),
        recorder.record("version_updated", Stage.FIRST_DRAFT, Stage.IN_PROGRESS, version=2),
        recorder.record("manual_stage_transition", Stage.IN_PROGRESS, Stage.UNDER_REVIEW, version=2, admin_user=admin),
    ]

    assert [e.id for e in filter_history(history)] == ["h2", "h1", "h0"]
    assert [e.id for e in filter_history(history, HistoryFilters(triggered_by="admin-1"))] == ["h2"]
    assert [e.id for e in filter_history(history, HistoryFilters(action="created"))] == ["h0"]

    window = HistoryFilters(
        from_date=datetime(2024, 1, 1, 1, tzinfo=timezone.utc),
        to_date=datetime(2024, 1, 1, 1),
    )
    assert [e.id for e in filter_history(history, window)] == ["h1"]
