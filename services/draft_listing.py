"""Filtering, sorting and pagination for the admin draft listing."""
from __future__ import annotations

import datetime as dt
import math
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from draft_lifecycle.models import Draft, Stage, as_utc

SortField = Literal["updated_at", "created_at", "progress", "stage", "title"]
ProgressBucket = Literal["all", "low", "medium", "high"]


class DraftListQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=200)
    stage: Optional[str] = "all"
    search: str = ""
    progress: ProgressBucket = "all"
    start_date: Optional[dt.datetime] = None
    end_date: Optional[dt.datetime] = None
    sort_by: SortField = "updated_at"
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("start_date", "end_date", mode="after")
    @classmethod
    def _utc_bounds(cls, value: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return as_utc(value)


class DraftPage(BaseModel):
    items: List[Draft] = Field(default_factory=list)
    page: int
    limit: int
    total: int
    total_pages: int


def _in_bucket(completion: int, bucket: ProgressBucket) -> bool:
    if bucket == "low":
        return completion <= 30
    if bucket == "medium":
        return 30 < completion <= 70
    if bucket == "high":
        return completion > 70
    return True


_SORT_KEYS: Dict[str, Callable[[Draft], Any]] = {
    "updated_at": lambda draft: draft.updated_at,
    "created_at": lambda draft: draft.created_at,
    "progress": lambda draft: draft.progress.completion,
    "stage": lambda draft: draft.stage.value,
    "title": lambda draft: draft.title.lower(),
}


def _matches(draft: Draft, query: DraftListQuery) -> bool:
    if query.stage and query.stage != "all":
        if draft.stage != Stage(query.stage):
            return False
    needle = query.search.strip().lower()
    if needle and not any(
        needle in haystack.lower() for haystack in (draft.title, draft.client_name, draft.session_id)
    ):
        return False
    if not _in_bucket(draft.progress.completion, query.progress):
        return False
    if query.start_date and draft.updated_at < query.start_date:
        return False
    if query.end_date and draft.updated_at > query.end_date:
        return False
    return True


def list_drafts(drafts: Sequence[Draft], query: DraftListQuery | None = None) -> DraftPage:
    """Return one page of ``drafts`` matching ``query``.

    An unknown ``stage`` filter raises ``ValueError``.
    """

    q = query or DraftListQuery()
    selected = [draft for draft in drafts if _matches(draft, q)]
    selected.sort(key=_SORT_KEYS[q.sort_by], reverse=q.sort_order == "desc")

    start = (q.page - 1) * q.limit
    return DraftPage(
        items=selected[start : start + q.limit],
        page=q.page,
        limit=q.limit,
        total=len(selected),
        total_pages=math.ceil(len(selected) / q.limit),
    )


__all__ = ["DraftListQuery", "DraftPage", "list_drafts"]
