from datetime import datetime, timedelta, timezone

import pytest

from draft_lifecycle.models import Draft, DraftProgress, Stage
from services.draft_listing import DraftListQuery, list_drafts

BASE = datetime(2024, 4, 1, tzinfo=timezone.utc)


def _draft(idx, stage, completion, title, client):
    return Draft(
        id=f"d{idx}",
        session_id=f"session-{idx}",
        user_id="u1",
        title=title,
        client_name=client,
        stage=stage,
        progress=DraftProgress(completion=completion),
        created_at=BASE + timedelta(days=idx),
        updated_at=BASE + timedelta(days=10 - idx),
    )


DRAFTS = [
    _draft(1, Stage.FIRST_DRAFT, 20, "Life Story - Ada", "Ada"),
    _draft(2, Stage.IN_PROGRESS, 50, "Life Story - Brian", "Brian"),
    _draft(3, Stage.PENDING_REVIEW, 100, "Memoir - Chloe", "Chloe"),
    _draft(4, Stage.IN_PROGRESS, 70, "Memoir - Dev", "Dev"),
]


def test_default_sort_is_most_recently_updated():
    page = list_drafts(DRAFTS)
    assert [d.id for d in page.items] == ["d1", "d2", "d3", "d4"]
    assert page.total == 4
    assert page.total_pages == 1


def test_stage_and_search_filters():
    assert [d.id for d in list_drafts(DRAFTS, DraftListQuery(stage="in_progress")).items] == ["d2", "d4"]
    assert [d.id for d in list_drafts(DRAFTS, DraftListQuery(search="memoir")).items] == ["d3", "d4"]
    assert [d.id for d in list_drafts(DRAFTS, DraftListQuery(search="SESSION-2")).items] == ["d2"]


@pytest.mark.parametrize(
    "bucket,expected",
    [("low", ["d1"]), ("medium", ["d2", "d4"]), ("high", ["d3"])],
)
def test_progress_buckets(bucket, expected):
    assert [d.id for d in list_drafts(DRAFTS, DraftListQuery(progress=bucket)).items] == expected


def test_date_range_on_updated_at():
    query = DraftListQuery(start_date=BASE + timedelta(days=7), end_date=BASE + timedelta(days=8))
    assert [d.id for d in list_drafts(DRAFTS, query).items] == ["d2", "d3"]


def test_sorting_and_pagination():
    query = DraftListQuery(sort_by="progress", sort_order="asc", limit=3, page=2)
    page = list_drafts(DRAFTS, query)
    assert [d.id for d in page.items] == ["d3"]
    assert page.total_pages == 2

    by_title = list_drafts(DRAFTS, DraftListQuery(sort_by="title", sort_order="asc"))
    assert [d.id for d in by_title.items] == ["d1", "d2", "d3", "d4"]


def test_unknown_stage_filter_raises():
    with pytest.raises(ValueError):
        list_drafts(DRAFTS, DraftListQuery(stage="published"))
