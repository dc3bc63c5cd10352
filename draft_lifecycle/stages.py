"""Stage transition table, business rules and permission checks for drafts.

The validator is stateless: every call is a pure function of the current
stage, the requested stage and the supplied :class:`ValidationContext`.
Failures come back as ``ValidationResult(valid=False, reason=...)`` values;
callers branch on them instead of catching exceptions.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from config.settings import Settings, settings as default_settings

from .models import (
    Actor,
    PermissionResult,
    Stage,
    StageMetadata,
    TransitionCandidate,
    ValidationContext,
    ValidationResult,
)

StageLike = Union[Stage, str]

TRANSITIONS: Mapping[Stage, Tuple[Stage, ...]] = {
    Stage.FIRST_DRAFT: (Stage.IN_PROGRESS, Stage.UNDER_REVIEW),
    # Back to first_draft when interviews are withdrawn
    Stage.IN_PROGRESS: (Stage.PENDING_REVIEW, Stage.UNDER_REVIEW, Stage.FIRST_DRAFT),
    Stage.PENDING_REVIEW: (Stage.UNDER_REVIEW, Stage.APPROVED, Stage.REJECTED),
    Stage.UNDER_REVIEW: (Stage.PENDING_APPROVAL, Stage.REJECTED, Stage.IN_PROGRESS),
    Stage.PENDING_APPROVAL: (Stage.APPROVED, Stage.REJECTED, Stage.UNDER_REVIEW),
    Stage.APPROVED: (Stage.ARCHIVED,),
    Stage.REJECTED: (Stage.IN_PROGRESS, Stage.UNDER_REVIEW),
    Stage.ARCHIVED: (),
}

ADMIN_ONLY_STAGES: FrozenSet[Stage] = frozenset(
    {Stage.UNDER_REVIEW, Stage.PENDING_APPROVAL, Stage.APPROVED, Stage.REJECTED, Stage.ARCHIVED}
)
AUTOMATIC_STAGES: Tuple[Stage, ...] = (Stage.FIRST_DRAFT, Stage.IN_PROGRESS, Stage.PENDING_REVIEW)
LOCKED_STAGES: FrozenSet[Stage] = frozenset({Stage.APPROVED, Stage.ARCHIVED})
REVIEWABLE_STAGES: FrozenSet[Stage] = frozenset(
    {Stage.PENDING_REVIEW, Stage.UNDER_REVIEW, Stage.PENDING_APPROVAL}
)
USER_EDITABLE_STAGES: FrozenSet[Stage] = frozenset({Stage.FIRST_DRAFT, Stage.IN_PROGRESS, Stage.REJECTED})

STAGE_METADATA: Mapping[Stage, StageMetadata] = {
    Stage.FIRST_DRAFT: StageMetadata(
        description="Initial draft created from first interview(s)",
        color="#94a3b8",
        icon="FileText",
        allow_edit=True,
        allow_delete=True,
    ),
    Stage.IN_PROGRESS: StageMetadata(
        description="Draft being updated as interviews are completed",
        color="#3b82f6",
        icon="Clock",
        allow_edit=True,
        allow_delete=True,
    ),
    Stage.PENDING_REVIEW: StageMetadata(
        description="All interviews completed, ready for admin review",
        color="#f59e0b",
        icon="AlertCircle",
        allow_edit=False,
        allow_delete=False,
    ),
    Stage.UNDER_REVIEW: StageMetadata(
        description="Currently being reviewed by admin",
        color="#8b5cf6",
        icon="Eye",
        allow_edit=False,
        allow_delete=False,
    ),
    Stage.PENDING_APPROVAL: StageMetadata(
        description="Review completed, awaiting final approval",
        color="#06b6d4",
        icon="CheckCircle2",
        allow_edit=False,
        allow_delete=False,
    ),
    Stage.APPROVED: StageMetadata(
        description="Draft approved and finalized",
        color="#10b981",
        icon="CheckCircle",
        allow_edit=False,
        allow_delete=False,
    ),
    Stage.REJECTED: StageMetadata(
        description="Draft rejected, can be revised",
        color="#ef4444",
        icon="XCircle",
        allow_edit=True,
        allow_delete=True,
    ),
    Stage.ARCHIVED: StageMetadata(
        description="Draft archived for historical reference",
        color="#6b7280",
        icon="Archive",
        allow_edit=False,
        allow_delete=False,
    ),
}

UNKNOWN_STAGE_METADATA = StageMetadata(
    description="Unknown stage",
    color="#6b7280",
    icon="HelpCircle",
    allow_edit=False,
    allow_delete=False,
)


def parse_stage(value: Optional[StageLike]) -> Optional[Stage]:
    """Return the matching :class:`Stage` or ``None`` for unknown values."""

    if value is None:
        return None
    if isinstance(value, Stage):
        return value
    try:
        return Stage(str(value).strip().lower())
    except ValueError:
        return None


def allowed_targets(stage: Stage) -> Tuple[Stage, ...]:
    return TRANSITIONS[stage]


def get_stage_metadata(stage: Optional[StageLike]) -> StageMetadata:
    """Metadata for ``stage``; unrecognised values get a generic object."""

    parsed = parse_stage(stage)
    if parsed is None:
        return UNKNOWN_STAGE_METADATA
    return STAGE_METADATA[parsed]


def determine_stage(completed: int, total: int) -> Stage:
    """Automatic stage for a completion level: <50%, 50-99%, 100%."""

    percentage = (completed / total) * 100 if total > 0 else 0.0
    if percentage < 50:
        return Stage.FIRST_DRAFT
    if percentage < 100:
        return Stage.IN_PROGRESS
    return Stage.PENDING_REVIEW


def _values(stages: Tuple[Stage, ...]) -> List[str]:
    return [stage.value for stage in stages]


class StageTransitionValidator:
    """Checks stage changes against the transition table and business rules."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings

    def validate(
        self,
        current_stage: Optional[StageLike],
        target_stage: StageLike,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        ctx = context or ValidationContext()
        target = parse_stage(target_stage)
        if target is None:
            return ValidationResult(
                valid=False,
                reason=f"Unknown stage '{target_stage}'",
                details={"known_stages": [stage.value for stage in Stage]},
            )

        if current_stage is None:
            return self._validate_initial(target)

        current = parse_stage(current_stage)
        if current is None:
            return ValidationResult(valid=False, reason=f"Unknown stage '{current_stage}'")

        allowed = allowed_targets(current)
        if target not in allowed:
            return ValidationResult(
                valid=False,
                reason=f"Invalid transition from '{current.value}' to '{target.value}'",
                details={"allowed_transitions": _values(allowed)},
            )

        requires_admin = target in ADMIN_ONLY_STAGES
        if requires_admin and not ctx.is_admin_action:
            return ValidationResult(
                valid=False,
                reason=f"Stage '{target.value}' requires admin action",
                requires_admin=True,
            )

        rule_failure = self._check_business_rules(current, target, ctx)
        if rule_failure is not None:
            rule_failure.requires_admin = requires_admin
            return rule_failure

        return ValidationResult(
            valid=True,
            message=f"Transition from '{current.value}' to '{target.value}' is valid",
            requires_admin=requires_admin,
        )

    def _validate_initial(self, target: Stage) -> ValidationResult:
        if target not in AUTOMATIC_STAGES:
            return ValidationResult(
                valid=False,
                reason=(
                    f"Invalid initial stage '{target.value}'. New drafts can only start with: "
                    f"{', '.join(_values(AUTOMATIC_STAGES))}"
                ),
                details={"allowed_initial_stages": _values(AUTOMATIC_STAGES)},
            )
        return ValidationResult(
            valid=True,
            message=f"New draft can be created with initial stage '{target.value}'",
            is_initial_creation=True,
        )

    def _check_business_rules(
        self, current: Stage, target: Stage, ctx: ValidationContext
    ) -> Optional[ValidationResult]:
        cfg = self._settings
        metrics = ctx.metrics

        # Approval gate
        if target is Stage.APPROVED:
            if metrics is None:
                return ValidationResult(
                    valid=False,
                    reason="Draft and session data required for approval validation",
                )
            completion = metrics.completion_ratio * 100
            if metrics.completion_ratio < cfg.APPROVAL_MIN_COMPLETION:
                return ValidationResult(
                    valid=False,
                    reason=(
                        "Cannot approve draft with less than "
                        f"{cfg.APPROVAL_MIN_COMPLETION * 100:g}% interview completion"
                    ),
                    details={"current_completion": round(completion, 2)},
                )
            if metrics.overall_rating < cfg.APPROVAL_MIN_RATING:
                return ValidationResult(
                    valid=False,
                    reason=f"Cannot approve draft with overall rating below {cfg.APPROVAL_MIN_RATING:.1f}",
                    details={"current_rating": metrics.overall_rating},
                )

        # Review readiness
        if target is Stage.PENDING_REVIEW and metrics is not None:
            if metrics.interview_count < metrics.total_interviews or metrics.total_interviews == 0:
                return ValidationResult(
                    valid=False,
                    reason="Cannot move to pending_review until all interviews are completed",
                    details={
                        "current_completion": round(metrics.completion_ratio * 100, 2),
                        "remaining_interviews": max(0, metrics.total_interviews - metrics.interview_count),
                    },
                )

        # Rejection justification
        if target is Stage.REJECTED:
            provided = (ctx.rejection_reason or "").strip()
            if len(provided) < cfg.REJECTION_REASON_MIN_LENGTH:
                return ValidationResult(
                    valid=False,
                    reason=(
                        "Rejection requires a detailed reason "
                        f"(minimum {cfg.REJECTION_REASON_MIN_LENGTH} characters)"
                    ),
                    details={"provided_reason": ctx.rejection_reason},
                )

        # Admin identity
        if target in ADMIN_ONLY_STAGES:
            if ctx.admin_user is None or not ctx.admin_user.id.strip():
                return ValidationResult(
                    valid=False,
                    reason="Admin user information required for this action",
                    details={"required_stage": target.value},
                )

        # Terminal lock
        if current in LOCKED_STAGES and target is not Stage.ARCHIVED:
            return ValidationResult(
                valid=False,
                reason=f"Cannot modify {current.value} drafts",
                details={"final_stage": current.value},
            )

        return None

    def get_available_transitions(
        self, stage: StageLike, context: ValidationContext | None = None
    ) -> List[TransitionCandidate]:
        """Every edge out of ``stage`` with the full validation applied."""

        current = parse_stage(stage)
        if current is None:
            return []
        candidates: List[TransitionCandidate] = []
        for target in allowed_targets(current):
            result = self.validate(current, target, context)
            candidates.append(
                TransitionCandidate(
                    stage=target,
                    valid=result.valid,
                    requires_admin=target in ADMIN_ONLY_STAGES,
                    automatic=target in AUTOMATIC_STAGES,
                    reason=result.reason or result.message,
                    metadata=get_stage_metadata(target),
                )
            )
        return candidates

    def get_stage_metadata(self, stage: Optional[StageLike]) -> StageMetadata:
        return get_stage_metadata(stage)

    def validate_user_permission(self, stage: StageLike, action: str, actor: Actor | None = None) -> PermissionResult:
        """Capability lookup for ``action`` on a draft sitting in ``stage``."""

        user = actor or Actor()
        parsed = parse_stage(stage)
        metadata = get_stage_metadata(parsed)
        is_admin = user.has_admin_rights

        permissions: Dict[str, bool] = {
            "view": True,
            "edit": metadata.allow_edit and (is_admin or parsed in USER_EDITABLE_STAGES),
            "delete": metadata.allow_delete and is_admin,
            "approve": is_admin and parsed in REVIEWABLE_STAGES,
            "reject": is_admin and parsed in REVIEWABLE_STAGES,
            "archive": is_admin and parsed is Stage.APPROVED,
        }
        allowed = permissions.get(action, False)
        stage_label = parsed.value if parsed is not None else str(stage)
        return PermissionResult(
            allowed=allowed,
            reason="Permission granted" if allowed else (
                f"Action '{action}' not allowed for stage '{stage_label}' and user role"
            ),
            user_role="admin" if is_admin else "user",
            stage_permissions=permissions,
        )


__all__ = [
    "ADMIN_ONLY_STAGES",
    "AUTOMATIC_STAGES",
    "STAGE_METADATA",
    "TRANSITIONS",
    "UNKNOWN_STAGE_METADATA",
    "StageTransitionValidator",
    "allowed_targets",
    "determine_stage",
    "get_stage_metadata",
    "parse_stage",
]
