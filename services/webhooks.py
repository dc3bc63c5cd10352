"""Intake for asynchronous interview results delivered by the AI pipeline."""
from __future__ import annotations

import datetime as dt
from typing import Any, Callable, Dict, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from draft_lifecycle.engine import VersioningEngine
from draft_lifecycle.errors import InterviewNotFoundError
from draft_lifecycle.models import CompletionResult, Interview, InterviewContent
from observability.logger import log_event


class InterviewResultStore(Protocol):
    def get_interview(self, interview_id: str) -> Optional[Interview]:
        ...

    def record_interview_result(
        self,
        interview_id: str,
        *,
        status: str,
        content: InterviewContent | None = None,
        completed_at: dt.datetime | None = None,
        error: str | None = None,
    ) -> Interview:
        ...


class DraftWebhookPayload(BaseModel):  # Callback body sent when draft generation finishes
    model_config = ConfigDict(populate_by_name=True)

    interview_id: str = Field(alias="interviewId", min_length=1)
    success: bool
    result: Optional[InterviewContent] = Field(default=None, alias="draft")
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class WebhookReceipt(BaseModel):
    success: bool = True
    message: str
    interview_id: str
    status: str
    processed_at: dt.datetime
    completion: Optional[CompletionResult] = None


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def handle_draft_webhook(
    payload: DraftWebhookPayload,
    sessions: InterviewResultStore,
    engine: VersioningEngine,
    *,
    clock: Callable[[], dt.datetime] = _utcnow,
) -> WebhookReceipt:
    """Record the pipeline outcome for one interview and version the draft on success."""

    interview = sessions.get_interview(payload.interview_id)
    if interview is None:
        raise InterviewNotFoundError(payload.interview_id)

    now = clock()
    log_event(
        "webhook_received",
        interview.session_id,
        interview_id=interview.id,
        action="completed" if payload.success else "failed",
    )

    if payload.success and payload.result is not None:
        # Redelivered results keep the original completion time.
        updated = sessions.record_interview_result(
            interview.id,
            status="completed",
            content=payload.result,
            completed_at=interview.completed_at if interview.is_completed else now,
        )
        completion = engine.handle_completion(updated)
        return WebhookReceipt(
            message="Draft webhook processed",
            interview_id=interview.id,
            status=updated.status,
            processed_at=now,
            completion=completion,
        )

    if interview.is_completed:
        log_event(
            "webhook_ignored",
            interview.session_id,
            interview_id=interview.id,
            reason="failure reported for a completed interview",
        )
        return WebhookReceipt(
            message="Interview already completed; failure ignored",
            interview_id=interview.id,
            status=interview.status,
            processed_at=now,
        )

    reason = payload.error or ("Missing draft result" if payload.success else "Unknown error")
    updated = sessions.record_interview_result(
        interview.id,
        status="error",
        error=f"Draft generation failed: {reason}",
    )
    return WebhookReceipt(
        message="Draft webhook processed",
        interview_id=interview.id,
        status=updated.status,
        processed_at=now,
    )


__all__ = ["DraftWebhookPayload", "WebhookReceipt", "handle_draft_webhook"]
