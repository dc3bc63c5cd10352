import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from draft_lifecycle.models import Interview, InterviewContent, Session


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    monkeypatch.setattr(settings, "EXPORT_DIR", os.path.join(td.name, "exports"), raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


class StepClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(minutes=1)
        return self.current


@pytest.fixture
def clock():
    return StepClock()


def build_session(session_id="s1", ratings=(None, None, None), types=None, completed=0, client_name="Ada Lovelace"):
    """Session with one interview per rating; the first ``completed`` are marked completed."""

    kinds = types or ["technical", "behavioral", "personal"][: len(ratings)]
    interviews = []
    for index, (rating, kind) in enumerate(zip(ratings, kinds)):
        done = index < completed
        interviews.append(
            Interview(
                id=f"{session_id}-i{index + 1}",
                session_id=session_id,
                type=kind,
                status="completed" if done else "scheduled",
                interviewer="Grace",
                completed_at=datetime(2024, 5, 1, 10 + index, tzinfo=timezone.utc) if done else None,
                content=InterviewContent(
                    rating=rating,
                    summary=f"Interview {index + 1} summary.",
                    strengths=[f"strength-{index + 1}", "curious"],
                    improvements=["pacing"],
                    skills=[f"skill-{index + 1}"],
                    achievements=[f"achievement-{index + 1}"],
                ),
            )
        )
    return Session(id=session_id, user_id="u1", client_name=client_name, title="Life Story", interviews=interviews)


def complete(session, index):
    """Mark interview ``index`` of ``session`` completed and return it."""

    interview = session.interviews[index]
    done = interview.model_copy(
        update={"status": "completed", "completed_at": datetime(2024, 5, 2, 10 + index, tzinfo=timezone.utc)}
    )
    session.interviews[index] = done
    return done
