"""Domain errors raised by the draft lifecycle engine and its stores."""
from __future__ import annotations


class DraftLifecycleError(Exception):
    """Base class for draft lifecycle failures."""


class SessionNotFoundError(DraftLifecycleError, KeyError):
    """Raised when a completion references an unknown session."""


class InterviewNotFoundError(DraftLifecycleError, KeyError):
    """Raised when a webhook references an unknown interview."""


class DraftNotFoundError(DraftLifecycleError, KeyError):
    """Raised when an admin action references an unknown draft."""


class StageTransitionError(DraftLifecycleError):
    """Raised when an automatic stage change is refused under the strict policy."""

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason


class VersionConflictError(DraftLifecycleError):
    """Raised when a save lost the compare-and-swap on the draft revision."""

    def __init__(self, session_id: str, expected_revision: int | None, actual_revision: int | None) -> None:
        super().__init__(
            f"Draft for session '{session_id}' changed concurrently "
            f"(expected revision {expected_revision}, found {actual_revision})"
        )
        self.session_id = session_id
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision


class HistoryRewriteError(DraftLifecycleError):
    """Raised when a save would drop or alter existing history entries."""


__all__ = [
    "DraftLifecycleError",
    "DraftNotFoundError",
    "HistoryRewriteError",
    "InterviewNotFoundError",
    "SessionNotFoundError",
    "StageTransitionError",
    "VersionConflictError",
]
