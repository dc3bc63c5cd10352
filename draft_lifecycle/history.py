"""Audit trail helpers: build transition records and query draft history."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .models import (
    SYSTEM_ACTOR,
    AdminUser,
    HistoryAction,
    HistoryFilters,
    Stage,
    TransitionMetadata,
    TransitionRecord,
    ValidationResult,
    VersionChanges,
)
from .stages import get_stage_metadata


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryRecorder:
    """Builds immutable :class:`TransitionRecord` entries."""

    def __init__(
        self,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory

    def record(
        self,
        action: HistoryAction,
        from_stage: Optional[Stage],
        to_stage: Stage,
        *,
        version: int,
        admin_user: AdminUser | None = None,
        reason: str | None = None,
        interview_count: int | None = None,
        changes: VersionChanges | None = None,
        validation: ValidationResult | None = None,
    ) -> TransitionRecord:
        automatic = admin_user is None
        if reason is None:
            if from_stage is None:
                reason = f"Draft created in stage {to_stage.value}"
            elif from_stage == to_stage:
                reason = f"Content updated in stage {to_stage.value}"
            else:
                reason = f"Stage changed from {from_stage.value} to {to_stage.value}"
        return TransitionRecord(
            id=self._id_factory(),
            action=action,
            from_stage=from_stage,
            to_stage=to_stage,
            version=version,
            timestamp=self._clock(),
            triggered_by=SYSTEM_ACTOR if automatic else admin_user.id,  # type: ignore[union-attr]
            reason=reason,
            automatic=automatic,
            admin_user=admin_user,
            interview_count=interview_count,
            changes=changes,
            validation=validation,
            metadata=TransitionMetadata(
                from_stage_info=get_stage_metadata(from_stage) if from_stage is not None else None,
                to_stage_info=get_stage_metadata(to_stage),
                transition_type="automatic" if automatic else "manual",
            ),
        )

    @staticmethod
    def append(history: Sequence[TransitionRecord], entry: TransitionRecord) -> List[TransitionRecord]:
        """Return a new history list extended by ``entry``; the input is untouched."""

        return [*history, entry]


def filter_history(history: Sequence[TransitionRecord], filters: HistoryFilters | None = None) -> List[TransitionRecord]:
    """Apply ``filters`` and return matching entries, newest first."""

    flt = filters or HistoryFilters()
    selected: List[tuple[int, TransitionRecord]] = []
    for index, entry in enumerate(history):
        if flt.action and entry.action != flt.action:
            continue
        if flt.triggered_by and entry.triggered_by != flt.triggered_by:
            continue
        if flt.from_date and entry.timestamp < flt.from_date:
            continue
        if flt.to_date and entry.timestamp > flt.to_date:
            continue
        selected.append((index, entry))
    # Later appends win ties on equal timestamps
    selected.sort(key=lambda pair: (pair[1].timestamp, pair[0]), reverse=True)
    return [entry for _, entry in selected]


def is_extension(stored: Sequence[TransitionRecord], candidate: Sequence[TransitionRecord]) -> bool:
    """True when ``candidate`` keeps every stored entry, in order, unchanged."""

    if len(candidate) < len(stored):
        return False
    return all(
        old.id == new.id and old.model_dump(mode="json") == new.model_dump(mode="json")
        for old, new in zip(stored, candidate)
    )


__all__ = ["HistoryRecorder", "filter_history", "is_extension"]
