import json
import os

import pytest
from conftest import StepClock, build_session, complete

from config.settings import Settings
from draft_lifecycle.engine import VersioningEngine
from draft_lifecycle.repository import InMemoryDraftRepository, InMemorySessionRepository
from draft_reports import export_draft, write_export


@pytest.fixture
def draft():
    session = build_session(ratings=(4.5, 4.2, None))
    complete(session, 0)
    complete(session, 1)
    engine = VersioningEngine(
        InMemoryDraftRepository(),
        InMemorySessionRepository([session]),
        settings=Settings(_env_file=None),
        clock=StepClock(),
    )
    return engine.handle_completion(session.interviews[1]).draft


def test_json_export(draft):
    exported = export_draft(draft, "json")
    assert exported.filename == f"draft-{draft.id}.json"
    assert exported.media_type == "application/json"
    body = json.loads(exported.payload)
    assert body["id"] == draft.id
    assert body["stage"] == "in_progress"
    assert body["content"]["recommendations"]["overall_rating"] == 4.35


def test_pdf_export(draft):
    exported = export_draft(draft, "PDF")
    assert exported.media_type == "application/pdf"
    assert exported.filename.endswith(".pdf")
    assert exported.payload.startswith(b"%PDF")
    assert exported.content_disposition == f'attachment; filename="{exported.filename}"'


def test_unknown_format_is_rejected(draft):
    with pytest.raises(ValueError):
        export_draft(draft, "docx")


def test_write_export_uses_export_dir(draft):
    path = write_export(export_draft(draft, "json"))
    assert os.path.exists(path)
    assert os.path.basename(path) == f"draft-{draft.id}.json"
