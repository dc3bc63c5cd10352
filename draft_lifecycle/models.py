from __future__ import annotations  # Draft lifecycle domain models

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class Stage(str, Enum):  # Lifecycle stage of a draft
    FIRST_DRAFT = "first_draft"
    IN_PROGRESS = "in_progress"
    PENDING_REVIEW = "pending_review"
    UNDER_REVIEW = "under_review"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"


PermissionAction = Literal["view", "edit", "delete", "approve", "reject", "archive"]
HistoryAction = Literal["created", "version_updated", "content_updated", "manual_stage_transition"]
CompletionAction = Literal["created", "updated", "no_change"]

SYSTEM_ACTOR = "system"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:  # Treat naive timestamps as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Session / interview inputs
# ---------------------------------------------------------------------------
class InterviewContent(BaseModel):  # Result payload produced for one interview
    rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    summary: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    achievements: List[str] = Field(default_factory=list)

    @field_validator("strengths", "improvements", "skills", "achievements", mode="before")
    @classmethod
    def _clean_items(cls, value: Any) -> List[str]:  # Drop blanks and coerce to strings
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(item).strip() for item in value if item is not None and str(item).strip()]

    @field_validator("summary", mode="before")
    @classmethod
    def _none_summary(cls, value: Any) -> str:
        return "" if value is None else str(value)


class Interview(BaseModel):  # Recorded interview belonging to a session
    id: str
    session_id: str
    type: str
    status: str = "scheduled"
    interviewer: Optional[str] = None
    completed_at: Optional[datetime] = None
    content: InterviewContent = Field(default_factory=InterviewContent)
    error: Optional[str] = None

    @field_validator("completed_at", mode="after")
    @classmethod
    def _utc_completed_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class Session(BaseModel):  # Client engagement owning interviews and one draft lineage
    id: str
    user_id: str
    client_name: str = ""
    title: str = ""
    interviews: List[Interview] = Field(default_factory=list)

    def completed_interviews(self) -> List[Interview]:
        return [interview for interview in self.interviews if interview.is_completed]


# ---------------------------------------------------------------------------
# Draft content
# ---------------------------------------------------------------------------
class PersonalSection(BaseModel):
    name: str = ""
    experience: str = ""
    education: str = ""


class ProfessionalSection(BaseModel):
    skills: List[str] = Field(default_factory=list)
    achievements: List[str] = Field(default_factory=list)
    ratings: Dict[str, float] = Field(default_factory=dict)


class RecommendationsSection(BaseModel):
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    decision: str = "pending"
    overall_rating: float = 0.0


class InterviewSummary(BaseModel):  # Per-interview digest kept inside the draft
    id: str
    type: str
    interviewer: Optional[str] = None
    completed_at: Optional[datetime] = None
    rating: Optional[float] = None
    summary: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)


class DraftContent(BaseModel):  # Normalized draft body
    personal: PersonalSection = Field(default_factory=PersonalSection)
    professional: ProfessionalSection = Field(default_factory=ProfessionalSection)
    recommendations: RecommendationsSection = Field(default_factory=RecommendationsSection)
    interviews: List[InterviewSummary] = Field(default_factory=list)

    def interview_ids(self) -> List[str]:
        return [entry.id for entry in self.interviews]


class SectionProgress(BaseModel):
    personal: int = 0
    professional: int = 0
    recommendations: int = 0


class InterviewTypeProgress(BaseModel):
    completed: int = 0
    total: int = 0
    percentage: int = 0


class DraftProgress(BaseModel):
    completion: int = 0
    sections: SectionProgress = Field(default_factory=SectionProgress)
    interview_types: Dict[str, InterviewTypeProgress] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Validation and history
# ---------------------------------------------------------------------------
class AdminUser(BaseModel):  # Administrative actor identity
    id: str = Field(min_length=1)
    name: str = ""
    email: str = ""


class Actor(BaseModel):  # Caller asking for a capability check
    id: str = ""
    role: str = "user"
    is_admin: bool = False

    @property
    def has_admin_rights(self) -> bool:
        return self.is_admin or self.role == "admin"


class DraftMetrics(BaseModel):  # Numbers the business rules look at
    interview_count: int = Field(default=0, ge=0)
    total_interviews: int = Field(default=0, ge=0)
    overall_rating: float = 0.0

    @property
    def completion_ratio(self) -> float:
        if self.total_interviews <= 0:
            return 0.0
        return self.interview_count / self.total_interviews


class ValidationContext(BaseModel):  # Inputs to a single transition check
    is_admin_action: bool = False
    admin_user: Optional[AdminUser] = None
    metrics: Optional[DraftMetrics] = None
    rejection_reason: Optional[str] = None
    reason: Optional[str] = None


class ValidationResult(BaseModel):  # Outcome of a transition check
    valid: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    requires_admin: bool = False
    is_initial_creation: bool = False
    details: Dict[str, Any] = Field(default_factory=dict)


class StageMetadata(BaseModel):  # Presentation and permission flags for a stage
    description: str
    color: str
    icon: str
    allow_edit: bool
    allow_delete: bool


class TransitionCandidate(BaseModel):
    stage: Stage
    valid: bool
    requires_admin: bool
    automatic: bool
    reason: Optional[str] = None
    metadata: StageMetadata


class PermissionResult(BaseModel):
    allowed: bool
    reason: str
    user_role: Literal["admin", "user"]
    stage_permissions: Dict[str, bool]


class RatingChange(BaseModel):
    previous: float
    current: float


class VersionChanges(BaseModel):  # Diff between two consecutive draft versions
    new_interviews: List[str] = Field(default_factory=list)
    rating_change: Optional[RatingChange] = None
    skills_added: List[str] = Field(default_factory=list)
    strengths_added: List[str] = Field(default_factory=list)


class TransitionMetadata(BaseModel):
    from_stage_info: Optional[StageMetadata] = None
    to_stage_info: StageMetadata
    transition_type: Literal["automatic", "manual"]


class TransitionRecord(BaseModel):  # Immutable audit trail entry
    id: str
    action: HistoryAction
    from_stage: Optional[Stage] = None
    to_stage: Stage
    version: int = Field(ge=1)
    timestamp: datetime
    triggered_by: str
    reason: str
    automatic: bool = False
    admin_user: Optional[AdminUser] = None
    interview_count: Optional[int] = None
    changes: Optional[VersionChanges] = None
    validation: Optional[ValidationResult] = None
    metadata: TransitionMetadata

    model_config = {"frozen": True}

    @field_validator("timestamp", mode="after")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Draft aggregate
# ---------------------------------------------------------------------------
class Draft(BaseModel):  # Evolving life-story document for a session
    id: str
    session_id: str
    user_id: str
    title: str = ""
    client_name: str = ""
    version: int = Field(default=1, ge=1)
    revision: int = Field(default=0, ge=0)
    stage: Stage
    content: DraftContent = Field(default_factory=DraftContent)
    progress: DraftProgress = Field(default_factory=DraftProgress)
    interview_count: int = Field(default=0, ge=0)
    total_interviews: int = Field(default=0, ge=0)
    completion_percentage: int = 0
    reviewed_by: Optional[str] = None
    approved_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    last_interview_completed: Optional[datetime] = None
    history: List[TransitionRecord] = Field(default_factory=list)

    @field_validator("created_at", "updated_at", "last_interview_completed", mode="after")
    @classmethod
    def _utc_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    def metrics(self) -> DraftMetrics:
        return DraftMetrics(
            interview_count=self.interview_count,
            total_interviews=self.total_interviews,
            overall_rating=self.content.recommendations.overall_rating,
        )


# ---------------------------------------------------------------------------
# Operation requests and results
# ---------------------------------------------------------------------------
class AdminTransitionRequest(BaseModel):  # Manual transition issued by an admin
    admin_user: AdminUser
    reason: Optional[str] = None
    rejection_reason: Optional[str] = None


class HistoryFilters(BaseModel):
    action: Optional[str] = None
    triggered_by: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    @field_validator("from_date", "to_date", mode="after")
    @classmethod
    def _utc_bounds(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class StageFallback(BaseModel):  # Automatic stage change refused and the stage kept
    attempted_stage: Stage
    retained_stage: Stage
    reason: Optional[str] = None


class CompletionResult(BaseModel):
    action: CompletionAction
    draft: Optional[Draft] = None
    message: str
    changes: Optional[VersionChanges] = None
    stage_fallback: Optional[StageFallback] = None


class TransitionOutcome(BaseModel):
    success: bool
    message: str
    draft: Optional[Draft] = None
    transition: Optional[TransitionRecord] = None
    validation: ValidationResult


__all__ = [
    "SYSTEM_ACTOR",
    "as_utc",
    "Actor",
    "AdminTransitionRequest",
    "AdminUser",
    "CompletionAction",
    "CompletionResult",
    "Draft",
    "DraftContent",
    "DraftMetrics",
    "DraftProgress",
    "HistoryAction",
    "HistoryFilters",
    "Interview",
    "InterviewContent",
    "InterviewSummary",
    "InterviewTypeProgress",
    "PermissionAction",
    "PermissionResult",
    "PersonalSection",
    "ProfessionalSection",
    "RatingChange",
    "RecommendationsSection",
    "SectionProgress",
    "Session",
    "Stage",
    "StageFallback",
    "StageMetadata",
    "TransitionCandidate",
    "TransitionMetadata",
    "TransitionOutcome",
    "TransitionRecord",
    "ValidationContext",
    "ValidationResult",
    "VersionChanges",
]
