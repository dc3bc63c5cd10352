"""Repository contracts for drafts and sessions, with in-memory implementations."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Protocol

from .errors import HistoryRewriteError, InterviewNotFoundError, VersionConflictError
from .history import is_extension
from .models import Draft, Interview, InterviewContent, Session, as_utc


class SessionRepository(Protocol):
    def get_session(self, session_id: str) -> Optional[Session]:
        ...


class DraftRepository(Protocol):
    def get(self, draft_id: str) -> Optional[Draft]:
        ...

    def find_by_session(self, session_id: str) -> Optional[Draft]:
        ...

    def save(self, draft: Draft, *, expected_revision: Optional[int]) -> Draft:
        """Persist ``draft`` if the stored revision still equals ``expected_revision``.

        ``expected_revision=None`` means the session must not have a draft yet.
        Returns the stored draft with its revision bumped.
        """
        ...

    def list_drafts(self) -> List[Draft]:
        ...


class SessionLocks:
    """Process-local registry of one lock per session id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[session_id] = lock
            return lock

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        lock = self._lock_for(session_id)
        with lock:
            yield


class InMemorySessionRepository:
    """Dict-backed session store used by tests and local tooling."""

    def __init__(self, sessions: Optional[List[Session]] = None) -> None:
        self._lock = threading.Lock()
        self._sessions: Dict[str, Session] = {}
        for session in sessions or []:
            self.save_session(session)

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session else None

    def save_session(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.id] = session.model_copy(deep=True)

    def get_interview(self, interview_id: str) -> Optional[Interview]:
        with self._lock:
            for session in self._sessions.values():
                for interview in session.interviews:
                    if interview.id == interview_id:
                        return interview.model_copy(deep=True)
        return None

    def record_interview_result(
        self,
        interview_id: str,
        *,
        status: str,
        content: InterviewContent | None = None,
        completed_at: datetime | None = None,
        error: str | None = None,
    ) -> Interview:
        with self._lock:
            for session in self._sessions.values():
                for index, existing in enumerate(session.interviews):
                    if existing.id != interview_id:
                        continue
                    updates = {"status": status, "error": error}
                    if content is not None:
                        updates["content"] = content
                    if completed_at is not None:
                        updates["completed_at"] = as_utc(completed_at)
                    updated = existing.model_copy(update=updates, deep=True)
                    session.interviews[index] = updated
                    return updated.model_copy(deep=True)
        raise InterviewNotFoundError(interview_id)


class InMemoryDraftRepository:
    """Dict-backed draft store with compare-and-swap saves."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._drafts: Dict[str, Draft] = {}
        self._by_session: Dict[str, str] = {}

    def get(self, draft_id: str) -> Optional[Draft]:
        with self._lock:
            draft = self._drafts.get(draft_id)
            return draft.model_copy(deep=True) if draft else None

    def find_by_session(self, session_id: str) -> Optional[Draft]:
        with self._lock:
            draft_id = self._by_session.get(session_id)
            if draft_id is None:
                return None
            return self._drafts[draft_id].model_copy(deep=True)

    def save(self, draft: Draft, *, expected_revision: Optional[int]) -> Draft:
        with self._lock:
            current_id = self._by_session.get(draft.session_id)
            current = self._drafts.get(current_id) if current_id else None
            actual = current.revision if current else None
            if actual != expected_revision:
                raise VersionConflictError(draft.session_id, expected_revision, actual)
            if current is not None:
                if current.id != draft.id:
                    raise VersionConflictError(draft.session_id, expected_revision, actual)
                if not is_extension(current.history, draft.history):
                    raise HistoryRewriteError(f"History of draft '{draft.id}' may only be extended")
            stored = draft.model_copy(update={"revision": (actual or 0) + 1}, deep=True)
            self._drafts[stored.id] = stored
            self._by_session[stored.session_id] = stored.id
            return stored.model_copy(deep=True)

    def list_drafts(self) -> List[Draft]:
        with self._lock:
            return [draft.model_copy(deep=True) for draft in self._drafts.values()]


__all__ = [
    "DraftRepository",
    "InMemoryDraftRepository",
    "InMemorySessionRepository",
    "SessionLocks",
    "SessionRepository",
]
