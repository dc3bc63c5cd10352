"""Versioning engine: turns interview completions and admin actions into draft versions."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, TypeVar

from config.settings import Settings, settings as default_settings
from observability.logger import log_event

from .aggregation import ContentAggregator, average_rating, latest_completion
from .errors import DraftNotFoundError, SessionNotFoundError, StageTransitionError, VersionConflictError
from .history import HistoryRecorder, filter_history
from .models import (
    AdminTransitionRequest,
    AdminUser,
    CompletionResult,
    Draft,
    DraftMetrics,
    HistoryFilters,
    Interview,
    Session,
    Stage,
    StageFallback,
    StageMetadata,
    TransitionCandidate,
    TransitionOutcome,
    TransitionRecord,
    ValidationContext,
)
from .repository import DraftRepository, SessionLocks, SessionRepository
from .stages import StageLike, StageTransitionValidator, determine_stage, parse_stage

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VersioningEngine:
    """Creates, re-versions and transitions drafts for interview sessions.

    Every mutation for a session runs under that session's lock and is saved
    with a compare-and-swap on ``Draft.revision``. A lost swap reloads state
    and recomputes, up to ``VERSION_CONFLICT_RETRIES`` extra attempts.
    """

    def __init__(
        self,
        drafts: DraftRepository,
        sessions: SessionRepository,
        *,
        validator: StageTransitionValidator | None = None,
        aggregator: ContentAggregator | None = None,
        recorder: HistoryRecorder | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
        locks: SessionLocks | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._drafts = drafts
        self._sessions = sessions
        self._settings = settings or default_settings
        self._clock = clock or _utcnow
        self._validator = validator or StageTransitionValidator(self._settings)
        self._aggregator = aggregator or ContentAggregator()
        self._recorder = recorder or HistoryRecorder(clock=self._clock)
        self._locks = locks or SessionLocks()
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    # ------------------------------------------------------------------
    # Completion events
    # ------------------------------------------------------------------
    def handle_completion(self, interview: Interview) -> CompletionResult:
        """Create, re-version or leave alone the draft of ``interview``'s session."""

        with self._locks.hold(interview.session_id):
            return self._with_retries(interview.session_id, lambda: self._apply_completion(interview))

    def _apply_completion(self, interview: Interview) -> CompletionResult:
        session = self._sessions.get_session(interview.session_id)
        if session is None:
            raise SessionNotFoundError(interview.session_id)
        session = self._overlay(session, interview)
        completed = session.completed_interviews()
        draft = self._drafts.find_by_session(session.id)

        if not completed:
            log_event("draft_unchanged", session.id, draft_id=draft.id if draft else None, reason="no completed interviews")
            return CompletionResult(
                action="no_change",
                draft=draft,
                message="Session has no completed interviews yet",
            )
        if draft is None:
            return self._create_draft(session, completed)
        return self._update_draft(session, completed, draft)

    @staticmethod
    def _overlay(session: Session, interview: Interview) -> Session:
        """Prefer the caller's copy of ``interview`` over the stored one."""

        interviews = [interview if existing.id == interview.id else existing for existing in session.interviews]
        return session.model_copy(update={"interviews": interviews})

    def _title(self, session: Session) -> str:
        base = session.title or self._settings.DEFAULT_DRAFT_TITLE
        return f"{base} - {session.client_name}" if session.client_name else base

    def _create_draft(self, session: Session, completed: Sequence[Interview]) -> CompletionResult:
        total = len(session.interviews)
        stage = determine_stage(len(completed), total)
        validation = self._validator.validate(None, stage)
        if not validation.valid:
            raise StageTransitionError(validation.reason or "Invalid initial stage", validation.reason)

        content = self._aggregator.aggregate(completed, session)
        progress = self._aggregator.calculate_progress(completed, session)
        now = self._clock()
        entry = self._recorder.record(
            "created",
            None,
            stage,
            version=1,
            interview_count=len(completed),
            validation=validation,
        )
        draft = Draft(
            id=self._id_factory(),
            session_id=session.id,
            user_id=session.user_id,
            title=self._title(session),
            client_name=session.client_name,
            version=1,
            stage=stage,
            content=content,
            progress=progress,
            interview_count=len(completed),
            total_interviews=total,
            completion_percentage=progress.completion,
            created_at=now,
            updated_at=now,
            last_interview_completed=latest_completion(completed),
            history=[entry],
        )
        saved = self._drafts.save(draft, expected_revision=None)
        log_event("draft_created", session.id, draft_id=saved.id, version=saved.version, to_stage=stage.value)
        return CompletionResult(
            action="created",
            draft=saved,
            message=f"Draft created in stage '{stage.value}' ({progress.completion}% complete)",
        )

    def _update_draft(self, session: Session, completed: Sequence[Interview], draft: Draft) -> CompletionResult:
        cfg = self._settings
        reflected = set(draft.content.interview_ids())
        new_ids = [item.id for item in completed if item.id not in reflected]
        new_rating = average_rating(completed)
        old_rating = draft.content.recommendations.overall_rating
        rating_moved = abs(new_rating - old_rating) > cfg.SIGNIFICANT_RATING_DELTA
        count_grew = len(completed) > draft.interview_count

        if not new_ids and not count_grew and not rating_moved:
            log_event("draft_unchanged", session.id, draft_id=draft.id, version=draft.version)
            return CompletionResult(action="no_change", draft=draft, message="No significant changes detected")

        total = len(session.interviews)
        metrics = DraftMetrics(interview_count=len(completed), total_interviews=total, overall_rating=new_rating)
        candidate = determine_stage(len(completed), total)
        stage = draft.stage
        validation = None
        fallback: Optional[StageFallback] = None
        if candidate != draft.stage:
            validation = self._validator.validate(
                draft.stage, candidate, ValidationContext(is_admin_action=False, metrics=metrics)
            )
            if validation.valid:
                stage = candidate
            elif cfg.LENIENT_STAGE_FALLBACK:
                fallback = StageFallback(attempted_stage=candidate, retained_stage=draft.stage, reason=validation.reason)
                log_event(
                    "stage_fallback",
                    session.id,
                    level=logging.WARNING,
                    draft_id=draft.id,
                    from_stage=draft.stage.value,
                    to_stage=candidate.value,
                    reason=validation.reason,
                )
            else:
                raise StageTransitionError(
                    f"Automatic transition from '{draft.stage.value}' to '{candidate.value}' refused",
                    validation.reason,
                )

        content = self._aggregator.aggregate(completed, session)
        progress = self._aggregator.calculate_progress(completed, session)
        changes = self._aggregator.changes_between(draft.content, content)
        version = draft.version + 1
        entry = self._recorder.record(
            "version_updated" if new_ids or count_grew else "content_updated",
            draft.stage,
            stage,
            version=version,
            interview_count=len(completed),
            changes=changes,
            validation=validation,
        )
        updated = draft.model_copy(
            update={
                "version": version,
                "stage": stage,
                "content": content,
                "progress": progress,
                "interview_count": len(completed),
                "total_interviews": total,
                "completion_percentage": progress.completion,
                "updated_at": self._clock(),
                "last_interview_completed": latest_completion(completed),
                "history": self._recorder.append(draft.history, entry),
            }
        )
        saved = self._drafts.save(updated, expected_revision=draft.revision)
        log_event(
            "draft_versioned",
            session.id,
            draft_id=saved.id,
            version=saved.version,
            from_stage=draft.stage.value,
            to_stage=stage.value,
        )
        return CompletionResult(
            action="updated",
            draft=saved,
            message=f"Draft updated to version {version} in stage '{stage.value}'",
            changes=changes,
            stage_fallback=fallback,
        )

    # ------------------------------------------------------------------
    # Admin transitions
    # ------------------------------------------------------------------
    def transition_draft_stage(
        self, draft_id: str, target_stage: StageLike, request: AdminTransitionRequest
    ) -> TransitionOutcome:
        """Move a draft to ``target_stage`` on behalf of an administrator."""

        draft = self._require_draft(draft_id)
        with self._locks.hold(draft.session_id):
            return self._with_retries(
                draft.session_id, lambda: self._apply_transition(draft_id, target_stage, request)
            )

    def _apply_transition(
        self, draft_id: str, target_stage: StageLike, request: AdminTransitionRequest
    ) -> TransitionOutcome:
        draft = self._require_draft(draft_id)
        context = ValidationContext(
            is_admin_action=True,
            admin_user=request.admin_user,
            metrics=self._current_metrics(draft),
            rejection_reason=request.rejection_reason,
            reason=request.reason,
        )
        validation = self._validator.validate(draft.stage, target_stage, context)
        target = parse_stage(target_stage)
        if not validation.valid or target is None:
            log_event(
                "stage_transition_rejected",
                draft.session_id,
                draft_id=draft.id,
                from_stage=draft.stage.value,
                to_stage=str(target_stage),
                triggered_by=request.admin_user.id,
                reason=validation.reason,
            )
            return TransitionOutcome(
                success=False,
                message=validation.reason or "Transition refused",
                draft=draft,
                validation=validation,
            )

        admin = request.admin_user
        reason = request.reason
        if reason is None and target is Stage.REJECTED:
            reason = request.rejection_reason
        entry = self._recorder.record(
            "manual_stage_transition",
            draft.stage,
            target,
            version=draft.version,
            admin_user=admin,
            reason=reason,
            interview_count=draft.interview_count,
            validation=validation,
        )
        updates = {
            "stage": target,
            "updated_at": self._clock(),
            "history": self._recorder.append(draft.history, entry),
        }
        if target is Stage.UNDER_REVIEW:
            updates["reviewed_by"] = admin.id
        elif target is Stage.APPROVED:
            updates["approved_by"] = admin.id
        elif target is Stage.REJECTED:
            updates["rejection_reason"] = request.rejection_reason
        saved = self._drafts.save(draft.model_copy(update=updates), expected_revision=draft.revision)
        log_event(
            "stage_transition",
            draft.session_id,
            draft_id=saved.id,
            from_stage=draft.stage.value,
            to_stage=target.value,
            triggered_by=admin.id,
            version=saved.version,
        )
        return TransitionOutcome(
            success=True,
            message=f"Draft moved from '{draft.stage.value}' to '{target.value}'",
            draft=saved,
            transition=entry,
            validation=validation,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_available_transitions(
        self, draft_id: str, admin_user: AdminUser | None = None
    ) -> List[TransitionCandidate]:
        """Outgoing edges for a draft, validated as ``admin_user`` when given."""

        draft = self._require_draft(draft_id)
        context = ValidationContext(
            is_admin_action=admin_user is not None,
            admin_user=admin_user,
            metrics=self._current_metrics(draft),
        )
        return self._validator.get_available_transitions(draft.stage, context)

    def get_stage_metadata(self, stage: Optional[StageLike]) -> StageMetadata:
        return self._validator.get_stage_metadata(stage)

    def get_draft_history(self, draft_id: str, filters: HistoryFilters | None = None) -> List[TransitionRecord]:
        draft = self._require_draft(draft_id)
        return filter_history(draft.history, filters)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_draft(self, draft_id: str) -> Draft:
        draft = self._drafts.get(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        return draft

    def _current_metrics(self, draft: Draft) -> DraftMetrics:
        metrics = draft.metrics()
        session = self._sessions.get_session(draft.session_id)
        if session is not None and session.interviews:
            metrics.total_interviews = len(session.interviews)
        return metrics

    def _with_retries(self, session_id: str, attempt: Callable[[], T]) -> T:
        retries = self._settings.VERSION_CONFLICT_RETRIES
        tries = 0
        while True:
            try:
                return attempt()
            except VersionConflictError as exc:
                tries += 1
                log_event(
                    "version_conflict",
                    session_id,
                    level=logging.WARNING,
                    attempt=tries,
                    expected_revision=exc.expected_revision,
                    actual_revision=exc.actual_revision,
                )
                if tries > retries:
                    raise


__all__ = ["VersioningEngine"]
