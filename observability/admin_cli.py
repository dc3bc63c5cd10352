"""Lightweight CLI helpers for inspecting stored drafts."""
from __future__ import annotations

import argparse
from typing import List, Optional

from draft_lifecycle.history import filter_history
from draft_lifecycle.models import HistoryFilters
from draft_reports import export_draft, write_export
from services.draft_listing import DraftListQuery, list_drafts
from storage.drafts import SqliteDraftRepository


def tail_drafts(limit: int = 20, stage: str = "all", db_path: Optional[str] = None) -> None:
    store = SqliteDraftRepository(db_path)
    page = list_drafts(store.list_drafts(), DraftListQuery(limit=limit, stage=stage))
    for draft in page.items:
        print(
            f"[{draft.updated_at.isoformat()}] {draft.id} session={draft.session_id} "
            f"stage={draft.stage.value} v{draft.version} completion={draft.progress.completion}% title={draft.title}"
        )
    print(f"{page.total} draft(s)")


def show_history(draft_id: str, action: Optional[str] = None, db_path: Optional[str] = None) -> int:
    draft = SqliteDraftRepository(db_path).get(draft_id)
    if draft is None:
        print(f"draft {draft_id} not found")
        return 1
    for entry in filter_history(draft.history, HistoryFilters(action=action)):
        origin = entry.from_stage.value if entry.from_stage else "-"
        print(
            f"[{entry.timestamp.isoformat()}] v{entry.version} {entry.action} "
            f"{origin} -> {entry.to_stage.value} by={entry.triggered_by} reason={entry.reason}"
        )
    return 0


def export(draft_id: str, fmt: str, out_dir: Optional[str] = None, db_path: Optional[str] = None) -> int:
    draft = SqliteDraftRepository(db_path).get(draft_id)
    if draft is None:
        print(f"draft {draft_id} not found")
        return 1
    path = write_export(export_draft(draft, fmt), out_dir)
    print(path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Inspect life-story drafts")
    parser.add_argument("--db", help="SQLite database path (defaults to DB_PATH)")
    parser.add_argument("--tail-drafts", type=int, help="Show the most recently updated drafts")
    parser.add_argument("--stage", default="all", help="Stage filter for --tail-drafts")
    parser.add_argument("--history", metavar="DRAFT_ID", help="Show the history of a draft, newest first")
    parser.add_argument("--action", help="History action filter for --history")
    parser.add_argument("--export", metavar="DRAFT_ID", help="Export a draft to EXPORT_DIR")
    parser.add_argument("--format", choices=("json", "pdf"), default="json", help="Export format")
    parser.add_argument("--out-dir", help="Export directory (defaults to EXPORT_DIR)")
    args = parser.parse_args(argv)

    status = 0
    if args.tail_drafts:
        tail_drafts(args.tail_drafts, args.stage, args.db)
    if args.history:
        status = show_history(args.history, args.action, args.db) or status
    if args.export:
        status = export(args.export, args.format, args.out_dir, args.db) or status
    return status


if __name__ == "__main__":
    raise SystemExit(main())
