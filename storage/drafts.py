"""SQLite-backed draft repository with compare-and-swap saves."""
from __future__ import annotations

import json
import sqlite3
from typing import List, Optional

from draft_lifecycle.errors import DraftNotFoundError, HistoryRewriteError, VersionConflictError
from draft_lifecycle.history import is_extension
from draft_lifecycle.models import Draft, TransitionRecord

from .sqlite import get_conn


class SqliteDraftRepository:
    """Stores draft bodies as JSON and history entries as append-only rows."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        self._db_path = db_path

    def _load(self, conn: sqlite3.Connection, row: Optional[sqlite3.Row]) -> Optional[Draft]:
        if row is None:
            return None
        return Draft.model_validate(
            {
                **json.loads(row["payload_json"]),
                "revision": row["revision"],
                "history": self._history(conn, row["id"]),
            }
        )

    @staticmethod
    def _history(conn: sqlite3.Connection, draft_id: str) -> List[TransitionRecord]:
        rows = conn.execute(
            "SELECT entry_json FROM draft_history WHERE draft_id = ? ORDER BY position",
            (draft_id,),
        ).fetchall()
        return [TransitionRecord.model_validate_json(row["entry_json"]) for row in rows]

    def get(self, draft_id: str) -> Optional[Draft]:
        with get_conn(self._db_path) as conn:
            row = conn.execute("SELECT * FROM drafts WHERE id = ?", (draft_id,)).fetchone()
            return self._load(conn, row)

    def find_by_session(self, session_id: str) -> Optional[Draft]:
        with get_conn(self._db_path) as conn:
            row = conn.execute("SELECT * FROM drafts WHERE session_id = ?", (session_id,)).fetchone()
            return self._load(conn, row)

    def list_drafts(self) -> List[Draft]:
        with get_conn(self._db_path) as conn:
            rows = conn.execute("SELECT * FROM drafts ORDER BY updated_at DESC").fetchall()
            return [draft for draft in (self._load(conn, row) for row in rows) if draft is not None]

    def save(self, draft: Draft, *, expected_revision: Optional[int]) -> Draft:
        payload = draft.model_dump_json(exclude={"history", "revision"})
        with get_conn(self._db_path) as conn:
            conn.execute("BEGIN IMMEDIATE")
            current = conn.execute(
                "SELECT id, revision FROM drafts WHERE session_id = ?", (draft.session_id,)
            ).fetchone()
            actual = current["revision"] if current else None
            if actual != expected_revision:
                raise VersionConflictError(draft.session_id, expected_revision, actual)

            if current is None:
                stored_history: List[TransitionRecord] = []
                conn.execute(
                    """INSERT INTO drafts
                       (id, session_id, user_id, stage, version, revision, payload_json, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, 1, ?, ?, ?)""",
                    (
                        draft.id,
                        draft.session_id,
                        draft.user_id,
                        draft.stage.value,
                        draft.version,
                        payload,
                        draft.created_at.isoformat(),
                        draft.updated_at.isoformat(),
                    ),
                )
            else:
                if current["id"] != draft.id:
                    raise VersionConflictError(draft.session_id, expected_revision, actual)
                stored_history = self._history(conn, draft.id)
                if not is_extension(stored_history, draft.history):
                    raise HistoryRewriteError(f"History of draft '{draft.id}' may only be extended")
                cur = conn.execute(
                    """UPDATE drafts
                       SET stage = ?, version = ?, revision = revision + 1, payload_json = ?, updated_at = ?
                       WHERE id = ? AND revision = ?""",
                    (
                        draft.stage.value,
                        draft.version,
                        payload,
                        draft.updated_at.isoformat(),
                        draft.id,
                        expected_revision,
                    ),
                )
                if cur.rowcount != 1:
                    raise VersionConflictError(draft.session_id, expected_revision, None)

            for position, entry in enumerate(draft.history[len(stored_history):], start=len(stored_history)):
                conn.execute(
                    """INSERT INTO draft_history
                       (id, draft_id, position, action, from_stage, to_stage, triggered_by, timestamp, entry_json)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        entry.id,
                        draft.id,
                        position,
                        entry.action,
                        entry.from_stage.value if entry.from_stage else None,
                        entry.to_stage.value,
                        entry.triggered_by,
                        entry.timestamp.isoformat(),
                        entry.model_dump_json(),
                    ),
                )
            row = conn.execute("SELECT * FROM drafts WHERE id = ?", (draft.id,)).fetchone()
            saved = self._load(conn, row)
        if saved is None:
            raise DraftNotFoundError(draft.id)
        return saved


__all__ = ["SqliteDraftRepository"]
