"""Draft lifecycle and versioning engine for interview-based life-story drafts."""
from .aggregation import ContentAggregator
from .engine import VersioningEngine
from .errors import (
    DraftLifecycleError,
    DraftNotFoundError,
    HistoryRewriteError,
    InterviewNotFoundError,
    SessionNotFoundError,
    StageTransitionError,
    VersionConflictError,
)
from .history import HistoryRecorder, filter_history
from .models import (
    Actor,
    AdminTransitionRequest,
    AdminUser,
    CompletionResult,
    Draft,
    HistoryFilters,
    Interview,
    InterviewContent,
    Session,
    Stage,
    TransitionOutcome,
    TransitionRecord,
    ValidationContext,
    ValidationResult,
)
from .repository import InMemoryDraftRepository, InMemorySessionRepository, SessionLocks
from .stages import TRANSITIONS, StageTransitionValidator, determine_stage

__all__ = [
    "Actor",
    "AdminTransitionRequest",
    "AdminUser",
    "CompletionResult",
    "ContentAggregator",
    "Draft",
    "DraftLifecycleError",
    "DraftNotFoundError",
    "HistoryFilters",
    "HistoryRecorder",
    "HistoryRewriteError",
    "InMemoryDraftRepository",
    "InMemorySessionRepository",
    "Interview",
    "InterviewContent",
    "InterviewNotFoundError",
    "Session",
    "SessionLocks",
    "SessionNotFoundError",
    "Stage",
    "StageTransitionError",
    "StageTransitionValidator",
    "TRANSITIONS",
    "TransitionOutcome",
    "TransitionRecord",
    "ValidationContext",
    "ValidationResult",
    "VersionConflictError",
    "VersioningEngine",
    "determine_stage",
    "filter_history",
]
