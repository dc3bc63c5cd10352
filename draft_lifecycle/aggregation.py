"""Content aggregation and progress metrics for drafts."""
from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    DraftContent,
    DraftProgress,
    Interview,
    InterviewSummary,
    InterviewTypeProgress,
    PersonalSection,
    ProfessionalSection,
    RatingChange,
    RecommendationsSection,
    SectionProgress,
    Session,
    VersionChanges,
)

PROFESSIONAL_TYPES = ("technical", "behavioral")
SKILL_SOURCE_TYPE = "technical"
HIGH_QUALITY_RATING = 4.0
HIGH_QUALITY_FACTOR = 0.9
STANDARD_FACTOR = 0.7
RATING_CHANGE_REPORT_DELTA = 0.1


def _round2(value: float) -> float:
    """Round a float to two decimal places with stable formatting."""
    return float(f"{value:.2f}")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return _round_half_up(part / whole * 100)


def _union(target: List[str], items: Iterable[str]) -> None:
    seen = set(target)
    for item in items:
        if item not in seen:
            target.append(item)
            seen.add(item)


def average_rating(interviews: Sequence[Interview]) -> float:
    """Mean of the ratings that are present; 0.0 when none are."""

    ratings = [i.content.rating for i in interviews if i.content.rating is not None]
    if not ratings:
        return 0.0
    return _round2(sum(ratings) / len(ratings))


def latest_completion(interviews: Sequence[Interview]) -> Optional[datetime]:
    dates = [i.completed_at for i in interviews if i.completed_at is not None]
    return max(dates) if dates else None


class ContentAggregator:
    """Merges completed interviews into one normalized draft body."""

    def aggregate(self, interviews: Sequence[Interview], session: Session | None = None) -> DraftContent:
        personal = PersonalSection(name=session.client_name if session else "")
        professional = ProfessionalSection()
        recommendations = RecommendationsSection()
        summaries: List[InterviewSummary] = []

        total_rating = 0.0
        rating_count = 0
        for interview in interviews:
            body = interview.content
            summaries.append(
                InterviewSummary(
                    id=interview.id,
                    type=interview.type,
                    interviewer=interview.interviewer,
                    completed_at=interview.completed_at,
                    rating=body.rating,
                    summary=body.summary,
                    strengths=list(body.strengths),
                    improvements=list(body.improvements),
                )
            )
            if body.rating is not None:
                total_rating += body.rating
                rating_count += 1
                professional.ratings[interview.type] = body.rating

            _union(recommendations.strengths, body.strengths)
            _union(recommendations.improvements, body.improvements)
            _union(professional.achievements, body.achievements)
            if interview.type == SKILL_SOURCE_TYPE:
                _union(professional.skills, body.skills)

        if rating_count:
            recommendations.overall_rating = _round2(total_rating / rating_count)

        return DraftContent(
            personal=personal,
            professional=professional,
            recommendations=recommendations,
            interviews=summaries,
        )

    def calculate_progress(self, completed: Sequence[Interview], session: Session) -> DraftProgress:
        total = len(session.interviews)
        completion = _percent(len(completed), total)

        expected_professional = sum(1 for i in session.interviews if i.type in PROFESSIONAL_TYPES)
        done_professional = sum(1 for i in completed if i.type in PROFESSIONAL_TYPES)

        # Narrative confidence discount: strong ratings earn a larger share
        high_quality = any(
            i.content.rating is not None and i.content.rating >= HIGH_QUALITY_RATING for i in completed
        )
        factor = HIGH_QUALITY_FACTOR if high_quality else STANDARD_FACTOR

        sections = SectionProgress(
            personal=100 if completed else 0,
            professional=_percent(done_professional, expected_professional),
            recommendations=_round_half_up(min(100.0, completion * factor)),
        )
        return DraftProgress(
            completion=completion,
            sections=sections,
            interview_types=self.interview_type_progress(completed, session),
        )

    @staticmethod
    def interview_type_progress(completed: Sequence[Interview], session: Session) -> Dict[str, InterviewTypeProgress]:
        totals: Dict[str, int] = {}
        for interview in session.interviews:
            totals[interview.type] = totals.get(interview.type, 0) + 1
        done: Dict[str, int] = {}
        for interview in completed:
            done[interview.type] = done.get(interview.type, 0) + 1
        return {
            kind: InterviewTypeProgress(
                completed=done.get(kind, 0),
                total=count,
                percentage=_percent(done.get(kind, 0), count),
            )
            for kind, count in totals.items()
        }

    @staticmethod
    def changes_between(previous: DraftContent, current: DraftContent) -> VersionChanges:
        """Diff two content snapshots for the history trail."""

        known_ids = set(previous.interview_ids())
        old_rating = previous.recommendations.overall_rating
        new_rating = current.recommendations.overall_rating
        rating_change = None
        if abs(new_rating - old_rating) > RATING_CHANGE_REPORT_DELTA:
            rating_change = RatingChange(previous=old_rating, current=new_rating)

        old_skills = set(previous.professional.skills)
        old_strengths = set(previous.recommendations.strengths)
        return VersionChanges(
            new_interviews=[i for i in current.interview_ids() if i not in known_ids],
            rating_change=rating_change,
            skills_added=[s for s in current.professional.skills if s not in old_skills],
            strengths_added=[s for s in current.recommendations.strengths if s not in old_strengths],
        )


__all__ = ["ContentAggregator", "average_rating", "latest_completion"]
