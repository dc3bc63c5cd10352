"""SQLite-backed session and interview store."""
from __future__ import annotations

import datetime as dt
import sqlite3
from typing import List, Optional

from draft_lifecycle.errors import InterviewNotFoundError
from draft_lifecycle.models import Interview, InterviewContent, Session, as_utc

from .sqlite import get_conn


def _parse_ts(value: Optional[str]) -> Optional[dt.datetime]:
    return dt.datetime.fromisoformat(value) if value else None


def _row_to_interview(row: sqlite3.Row) -> Interview:
    return Interview(
        id=row["id"],
        session_id=row["session_id"],
        type=row["type"],
        status=row["status"],
        interviewer=row["interviewer"],
        completed_at=_parse_ts(row["completed_at"]),
        content=InterviewContent.model_validate_json(row["content_json"]),
        error=row["error"],
    )


class SqliteSessionRepository:
    def __init__(self, db_path: Optional[str] = None) -> None:
        self._db_path = db_path

    def get_session(self, session_id: str) -> Optional[Session]:
        with get_conn(self._db_path) as conn:
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
            if row is None:
                return None
            interviews = conn.execute(
                "SELECT * FROM interviews WHERE session_id = ? ORDER BY position", (session_id,)
            ).fetchall()
        return Session(
            id=row["id"],
            user_id=row["user_id"],
            client_name=row["client_name"],
            title=row["title"],
            interviews=[_row_to_interview(item) for item in interviews],
        )

    def save_session(self, session: Session) -> None:
        """Insert or replace ``session`` together with its interviews."""

        created_at = dt.datetime.now(dt.timezone.utc).isoformat()
        with get_conn(self._db_path) as conn:
            conn.execute(
                """INSERT INTO sessions (id, user_id, client_name, title, created_at)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                     user_id = excluded.user_id,
                     client_name = excluded.client_name,
                     title = excluded.title""",
                (session.id, session.user_id, session.client_name, session.title, created_at),
            )
            conn.execute("DELETE FROM interviews WHERE session_id = ?", (session.id,))
            for position, interview in enumerate(session.interviews):
                conn.execute(
                    """INSERT INTO interviews
                       (id, session_id, position, type, status, interviewer, completed_at, content_json, error)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        interview.id,
                        session.id,
                        position,
                        interview.type,
                        interview.status,
                        interview.interviewer,
                        interview.completed_at.isoformat() if interview.completed_at else None,
                        interview.content.model_dump_json(),
                        interview.error,
                    ),
                )

    def get_interview(self, interview_id: str) -> Optional[Interview]:
        with get_conn(self._db_path) as conn:
            row = conn.execute("SELECT * FROM interviews WHERE id = ?", (interview_id,)).fetchone()
        return _row_to_interview(row) if row else None

    def record_interview_result(
        self,
        interview_id: str,
        *,
        status: str,
        content: InterviewContent | None = None,
        completed_at: dt.datetime | None = None,
        error: str | None = None,
    ) -> Interview:
        """Store the outcome of an interview and return the updated record."""

        with get_conn(self._db_path) as conn:
            row = conn.execute("SELECT * FROM interviews WHERE id = ?", (interview_id,)).fetchone()
            if row is None:
                raise InterviewNotFoundError(interview_id)
            current = _row_to_interview(row)
            new_content = content if content is not None else current.content
            new_completed = as_utc(completed_at) if completed_at is not None else current.completed_at
            conn.execute(
                """UPDATE interviews
                   SET status = ?, content_json = ?, completed_at = ?, error = ?
                   WHERE id = ?""",
                (
                    status,
                    new_content.model_dump_json(),
                    new_completed.isoformat() if new_completed else None,
                    error,
                    interview_id,
                ),
            )
        return current.model_copy(
            update={"status": status, "content": new_content, "completed_at": new_completed, "error": error}
        )

    def list_sessions(self) -> List[str]:
        with get_conn(self._db_path) as conn:
            rows = conn.execute("SELECT id FROM sessions ORDER BY created_at").fetchall()
        return [row["id"] for row in rows]


__all__ = ["SqliteSessionRepository"]
