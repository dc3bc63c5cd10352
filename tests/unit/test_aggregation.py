from conftest import build_session

from draft_lifecycle.aggregation import ContentAggregator, average_rating
from draft_lifecycle.models import DraftContent, RecommendationsSection


def test_aggregate_merges_completed_interviews_in_order():
    session = build_session(ratings=(4.5, 4.2, None), completed=2)
    content = ContentAggregator().aggregate(session.completed_interviews(), session)

    assert content.interview_ids() == ["s1-i1", "s1-i2"]
    assert content.personal.name == "Ada Lovelace"
    assert content.recommendations.overall_rating == 4.35
    assert content.recommendations.strengths == ["strength-1", "curious", "strength-2"]
    assert content.recommendations.improvements == ["pacing"]
    assert content.professional.achievements == ["achievement-1", "achievement-2"]
    # only technical interviews contribute skills
    assert content.professional.skills == ["skill-1"]
    assert content.professional.ratings == {"technical": 4.5, "behavioral": 4.2}


def test_missing_ratings_are_ignored_in_the_mean():
    session = build_session(ratings=(None, 3.0, None), completed=3)
    completed = session.completed_interviews()
    assert average_rating(completed) == 3.0
    assert ContentAggregator().aggregate(completed, session).recommendations.overall_rating == 3.0


def test_no_ratings_means_zero():
    session = build_session(ratings=(None,), completed=1)
    assert average_rating(session.completed_interviews()) == 0.0


def test_progress_with_high_rating():
    session = build_session(ratings=(4.5, None, None), completed=1)
    progress = ContentAggregator().calculate_progress(session.completed_interviews(), session)

    assert progress.completion == 33
    assert progress.sections.personal == 100
    # one of technical+behavioral done
    assert progress.sections.professional == 50
    # 33 * 0.9 = 29.7
    assert progress.sections.recommendations == 30
    assert progress.interview_types["technical"].percentage == 100
    assert progress.interview_types["personal"].completed == 0
    assert progress.interview_types["personal"].total == 1


def test_progress_with_standard_rating_and_rounding_half_up():
    session = build_session(ratings=(3.0, 3.0, None), completed=2)
    progress = ContentAggregator().calculate_progress(session.completed_interviews(), session)

    assert progress.completion == 67
    assert progress.sections.professional == 100
    # 67 * 0.7 = 46.9
    assert progress.sections.recommendations == 47


def test_progress_for_empty_session():
    session = build_session(ratings=())
    progress = ContentAggregator().calculate_progress([], session)
    assert progress.completion == 0
    assert progress.sections.personal == 0
    assert progress.sections.professional == 0
    assert progress.interview_types == {}


def test_changes_between_reports_new_material():
    session = build_session(ratings=(4.5, 3.0, None), completed=2)
    aggregator = ContentAggregator()
    before = aggregator.aggregate(session.completed_interviews()[:1], session)
    after = aggregator.aggregate(session.completed_interviews(), session)

    changes = aggregator.changes_between(before, after)
    assert changes.new_interviews == ["s1-i2"]
    assert changes.rating_change is not None
    assert changes.rating_change.previous == 4.5
    assert changes.rating_change.current == 3.75
    assert changes.strengths_added == ["strength-2"]
    assert changes.skills_added == []


def test_small_rating_moves_are_not_reported():
    before = DraftContent(recommendations=RecommendationsSection(overall_rating=4.0))
    after = DraftContent(recommendations=RecommendationsSection(overall_rating=4.05))
    assert ContentAggregator.changes_between(before, after).rating_change is None
