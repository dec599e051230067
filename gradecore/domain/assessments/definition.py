"""
Assessment Definition Rules

Validation of assessment metadata and the time-based status read model.
"""

from dataclasses import replace
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from pydantic import Field

from gradecore.common.auth import Actor
from gradecore.common.clock import ensure_utc
from gradecore.common.error_handling import InvalidDateRangeError, ScoreOutOfRangeError, ValidationError
from gradecore.common.validation import BaseValidationModel, parse_model

from .model import AssessmentDefinition, AssessmentResult, AssessmentStatus, AssessmentType

# Assigned from the acting identity, never from input
IDENTITY_FIELDS = ("created_by", "tenant_id")


class AssessmentInput(BaseValidationModel):
    """Assessment metadata as supplied by an author."""
    class_id: str = Field(min_length=1)
    title: str = Field(min_length=3)
    description: str = ""
    type: AssessmentType = AssessmentType.EXAM
    total_points: float = Field(default=100, gt=0)
    weight: float = Field(default=1, gt=0)
    available_from: Optional[datetime] = None
    available_to: Optional[datetime] = None
    due_date: Optional[datetime] = None
    is_active: bool = True
    instructions: str = ""


def _parse(data: Mapping[str, Any]) -> AssessmentInput:
    spoofed = [name for name in IDENTITY_FIELDS if name in data]
    if spoofed:
        raise ValidationError(
            "Author identity is assigned by the system",
            errors=[
                {"field": name, "message": "Assigned from the acting user", "type": "forbidden"}
                for name in spoofed
            ],
        )

    payload = parse_model(AssessmentInput, data, "assessment")

    available_from = ensure_utc(payload.available_from)
    available_to = ensure_utc(payload.available_to)
    if available_from and available_to and available_from > available_to:
        raise InvalidDateRangeError(available_from, available_to)
    return payload


def create_assessment(
    data: Mapping[str, Any],
    actor: Actor,
    now: datetime,
    assessment_id: Optional[str] = None,
) -> AssessmentDefinition:
    """
    Validate assessment input and stamp it with the acting identity.

    Raises:
        ValidationError: malformed input or identity fields in the input
        InvalidDateRangeError: available_from is after available_to
    """
    payload = _parse(data)
    now = ensure_utc(now)
    return AssessmentDefinition(
        id=assessment_id or AssessmentDefinition.new_id(),
        tenant_id=actor.tenant_id,
        created_by=actor.user_id,
        created_at=now,
        updated_at=now,
        **payload.model_dump(),
    )


def apply_assessment_update(
    assessment: AssessmentDefinition,
    changes: Mapping[str, Any],
    now: datetime,
) -> AssessmentDefinition:
    """Apply a partial update; identity and creation fields are preserved."""
    merged = assessment.settings_dict()
    merged.update(changes)
    payload = _parse(merged)
    return replace(assessment, updated_at=ensure_utc(now), **payload.model_dump())


def compute_status(assessment: AssessmentDefinition, now: datetime) -> AssessmentStatus:
    """
    Status of the assessment at `now`.

    Precedence: inactive, not yet open, past due, inside the availability
    window, and scheduled as the fallback.
    """
    now = ensure_utc(now)

    if not assessment.is_active:
        return AssessmentStatus.INACTIVE
    if assessment.available_from and now < assessment.available_from:
        return AssessmentStatus.SCHEDULED
    if assessment.due_date and now > assessment.due_date:
        return AssessmentStatus.COMPLETED

    opened = assessment.available_from is None or assessment.available_from <= now
    not_closed = assessment.available_to is None or now <= assessment.available_to
    if opened and not_closed:
        return AssessmentStatus.IN_PROGRESS
    return AssessmentStatus.SCHEDULED


def ensure_scores_within(assessment: AssessmentDefinition, results: Iterable[AssessmentResult]) -> None:
    """
    Check that total_points still bounds every graded score.

    Raises:
        ScoreOutOfRangeError: a graded result scores above the assessment's total
    """
    graded = [r for r in results if r.score is not None]
    if not graded:
        return
    highest = max(graded, key=lambda r: r.score)
    if highest.score > assessment.total_points:
        raise ScoreOutOfRangeError(
            highest.score,
            assessment.total_points,
            details={"result_id": highest.id, "field": "total_points"},
            context={"assessment_id": assessment.id},
        )
