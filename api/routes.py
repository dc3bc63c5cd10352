"""FastAPI routes for draft administration and pipeline callbacks."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from api.schemas import ExportReq, StageChangeReq, TransitionRefused
from draft_lifecycle.engine import VersioningEngine
from draft_lifecycle.errors import (
    DraftNotFoundError,
    HistoryRewriteError,
    InterviewNotFoundError,
    SessionNotFoundError,
    StageTransitionError,
    VersionConflictError,
)
from draft_lifecycle.models import (
    AdminTransitionRequest,
    AdminUser,
    Draft,
    HistoryFilters,
    StageMetadata,
    TransitionCandidate,
    TransitionOutcome,
    TransitionRecord,
)
from draft_lifecycle.repository import SessionLocks
from draft_reports import export_draft
from services.draft_listing import DraftListQuery, DraftPage, list_drafts
from services.webhooks import DraftWebhookPayload, WebhookReceipt, handle_draft_webhook
from storage.drafts import SqliteDraftRepository
from storage.sessions import SqliteSessionRepository


router = APIRouter(prefix="/api/admin")
webhook_router = APIRouter(prefix="/api/webhooks")

_LOCKS = SessionLocks()


def get_draft_store() -> SqliteDraftRepository:
    return SqliteDraftRepository()


def get_session_store() -> SqliteSessionRepository:
    return SqliteSessionRepository()


def get_engine(
    drafts: SqliteDraftRepository = Depends(get_draft_store),
    sessions: SqliteSessionRepository = Depends(get_session_store),
) -> VersioningEngine:
    return VersioningEngine(drafts, sessions, locks=_LOCKS)


def _draft_or_404(drafts: SqliteDraftRepository, draft_id: str) -> Draft:
    draft = drafts.get(draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return draft


@router.get("/drafts", response_model=DraftPage)
def get_drafts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=200),
    stage: str = "all",
    search: str = "",
    progress: str = "all",
    start_date: Optional[dt.datetime] = None,
    end_date: Optional[dt.datetime] = None,
    sort_by: str = "updated_at",
    sort_order: str = "desc",
    drafts: SqliteDraftRepository = Depends(get_draft_store),
) -> DraftPage:
    try:
        query = DraftListQuery(
            page=page,
            limit=limit,
            stage=stage,
            search=search,
            progress=progress,
            start_date=start_date,
            end_date=end_date,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return list_drafts(drafts.list_drafts(), query)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/drafts/{draft_id}", response_model=Draft)
def get_draft(draft_id: str, drafts: SqliteDraftRepository = Depends(get_draft_store)) -> Draft:
    return _draft_or_404(drafts, draft_id)


@router.put(
    "/drafts/{draft_id}/stage",
    response_model=TransitionOutcome,
    responses={409: {"model": TransitionRefused}},
)
def change_stage(
    draft_id: str,
    req: StageChangeReq,
    engine: VersioningEngine = Depends(get_engine),
) -> TransitionOutcome:
    request = AdminTransitionRequest(
        admin_user=req.admin_user,
        reason=req.reason,
        rejection_reason=req.rejection_reason,
    )
    try:
        outcome = engine.transition_draft_stage(draft_id, req.stage, request)
    except DraftNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Draft not found") from exc
    if not outcome.success:
        refused = TransitionRefused(message=outcome.message, validation=outcome.validation)
        raise HTTPException(status_code=409, detail=refused.model_dump(mode="json"))
    return outcome


@router.get("/drafts/{draft_id}/history", response_model=List[TransitionRecord])
def get_history(
    draft_id: str,
    action: Optional[str] = None,
    triggered_by: Optional[str] = None,
    from_date: Optional[dt.datetime] = None,
    to_date: Optional[dt.datetime] = None,
    engine: VersioningEngine = Depends(get_engine),
) -> List[TransitionRecord]:
    filters = HistoryFilters(action=action, triggered_by=triggered_by, from_date=from_date, to_date=to_date)
    try:
        return engine.get_draft_history(draft_id, filters)
    except DraftNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Draft not found") from exc


@router.get("/drafts/{draft_id}/transitions", response_model=List[TransitionCandidate])
def get_transitions(
    draft_id: str,
    admin_id: Optional[str] = None,
    engine: VersioningEngine = Depends(get_engine),
) -> List[TransitionCandidate]:
    admin = AdminUser(id=admin_id) if admin_id else None
    try:
        return engine.get_available_transitions(draft_id, admin)
    except DraftNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Draft not found") from exc


@router.get("/stages/{stage}", response_model=StageMetadata)
def get_stage(stage: str, engine: VersioningEngine = Depends(get_engine)) -> StageMetadata:
    return engine.get_stage_metadata(stage)


@router.post("/drafts/{draft_id}/export")
def export(
    draft_id: str,
    req: ExportReq,
    drafts: SqliteDraftRepository = Depends(get_draft_store),
) -> Response:
    draft = _draft_or_404(drafts, draft_id)
    exported = export_draft(draft, req.format)
    return Response(
        content=exported.payload,
        media_type=exported.media_type,
        headers={"Content-Disposition": exported.content_disposition},
    )


@webhook_router.post("/draft-complete", response_model=WebhookReceipt)
def draft_complete(
    payload: DraftWebhookPayload,
    sessions: SqliteSessionRepository = Depends(get_session_store),
    engine: VersioningEngine = Depends(get_engine),
) -> WebhookReceipt:
    try:
        return handle_draft_webhook(payload, sessions, engine)
    except (InterviewNotFoundError, SessionNotFoundError) as exc:
        raise HTTPException(status_code=404, detail="Interview not found") from exc
    except (StageTransitionError, VersionConflictError, HistoryRewriteError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
