import os

from conftest import StepClock, build_session, complete

from config.settings import Settings
from draft_lifecycle.engine import VersioningEngine
from observability import admin_cli
from storage.drafts import SqliteDraftRepository
from storage.sessions import SqliteSessionRepository


def _seed():
    session = build_session(ratings=(4.5, 4.2, 3.9))
    SqliteSessionRepository().save_session(session)
    engine = VersioningEngine(
        SqliteDraftRepository(), SqliteSessionRepository(), settings=Settings(_env_file=None), clock=StepClock()
    )
    engine.handle_completion(complete(session, 0))
    return engine.handle_completion(complete(session, 1)).draft


def test_tail_and_history(capsys):
    draft = _seed()

    assert admin_cli.main(["--tail-drafts", "5"]) == 0
    out = capsys.readouterr().out
    assert draft.id in out
    assert "stage=in_progress" in out

    assert admin_cli.main(["--history", draft.id]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert "version_updated" in lines[0]
    assert "created" in lines[1]


def test_export_and_missing_draft(tmp_path, capsys):
    draft = _seed()

    assert admin_cli.main(["--export", draft.id, "--format", "json", "--out-dir", str(tmp_path)]) == 0
    path = capsys.readouterr().out.strip()
    assert os.path.exists(path)

    assert admin_cli.main(["--history", "missing"]) == 1
