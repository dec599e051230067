"""
Assessment Domain Model Module

This module defines open-ended assessments (graded manually) and the
per-student result records that move through the grading lifecycle.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import uuid

from gradecore.common.clock import ensure_utc
from gradecore.common.error_handling import ValidationError


class AssessmentType(enum.Enum):
    """Kinds of open-ended assessment."""
    EXAM = "exam"
    ASSIGNMENT = "assignment"
    PROJECT = "project"
    QUIZ = "quiz"
    PRESENTATION = "presentation"
    PARTICIPATION = "participation"


class AssessmentStatus(enum.Enum):
    """Status of an assessment relative to a point in time."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    INACTIVE = "inactive"


class ResultStatus(enum.Enum):
    """Grading lifecycle of a student's result."""
    PENDING = "pending"
    SUBMITTED = "submitted"
    GRADED = "graded"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return ensure_utc(value)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class AssessmentDefinition:
    """
    Represents an open-ended assessment of a class.

    Attributes:
        id: Unique identifier for the assessment
        class_id: The class the assessment belongs to
        tenant_id: Tenant of the author, injected from the acting identity
        title: Assessment title
        created_by: Author, injected from the acting identity
        type: Kind of assessment
        description: Free-text description
        total_points: Upper bound of every result's score
        weight: Multiplier of the assessment in the final grade
        available_from: Start of the availability window
        available_to: End of the availability window
        due_date: Submission deadline
        is_active: Whether the assessment is in use
        instructions: Instructions for students
        created_at: When the assessment was created
        updated_at: When the assessment was last updated
    """
    id: str
    class_id: str
    tenant_id: str
    title: str
    created_by: str
    type: AssessmentType = AssessmentType.EXAM
    description: str = ""
    total_points: float = 100
    weight: float = 1
    available_from: Optional[datetime] = None
    available_to: Optional[datetime] = None
    due_date: Optional[datetime] = None
    is_active: bool = True
    instructions: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        self.available_from = ensure_utc(self.available_from)
        self.available_to = ensure_utc(self.available_to)
        self.due_date = ensure_utc(self.due_date)

    @classmethod
    def new_id(cls) -> str:
        return str(uuid.uuid4())

    def settings_dict(self) -> Dict[str, Any]:
        """Author-editable fields, in the shape accepted by create_assessment."""
        return {
            'class_id': self.class_id,
            'title': self.title,
            'description': self.description,
            'type': self.type.value,
            'total_points': self.total_points,
            'weight': self.weight,
            'available_from': self.available_from,
            'available_to': self.available_to,
            'due_date': self.due_date,
            'is_active': self.is_active,
            'instructions': self.instructions,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert the assessment to a dictionary."""
        data = {'id': self.id, 'tenant_id': self.tenant_id, **self.settings_dict()}
        data.update({
            'available_from': _isoformat(self.available_from),
            'available_to': _isoformat(self.available_to),
            'due_date': _isoformat(self.due_date),
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AssessmentDefinition':
        """Create an AssessmentDefinition from a dictionary."""
        return cls(
            id=data['id'],
            class_id=data['class_id'],
            tenant_id=data['tenant_id'],
            title=data['title'],
            created_by=data['created_by'],
            type=AssessmentType(data.get('type', AssessmentType.EXAM.value)),
            description=data.get('description', ''),
            total_points=data.get('total_points', 100),
            weight=data.get('weight', 1),
            available_from=_parse_datetime(data.get('available_from')),
            available_to=_parse_datetime(data.get('available_to')),
            due_date=_parse_datetime(data.get('due_date')),
            is_active=data.get('is_active', True),
            instructions=data.get('instructions', ''),
            created_at=_parse_datetime(data.get('created_at')) or _utcnow(),
            updated_at=_parse_datetime(data.get('updated_at')) or _utcnow(),
        )


@dataclass
class AssessmentResult:
    """
    One student's result on an assessment.

    The grading fields are consistent at construction time: a score exists
    exactly when the result is graded, and a graded result names its grader
    and grading time. `revision` is the optimistic-concurrency token kept by
    the store.
    """
    id: str
    assessment_id: str
    student_id: str
    status: ResultStatus = ResultStatus.PENDING
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[str] = None
    score: Optional[float] = None
    feedback: Optional[str] = None
    attachment_url: Optional[str] = None
    revision: int = 0

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = ResultStatus(self.status)
        self.submitted_at = ensure_utc(self.submitted_at)
        self.graded_at = ensure_utc(self.graded_at)

        graded = self.status == ResultStatus.GRADED
        if graded != (self.score is not None):
            raise ValidationError.for_field(
                "score", "A result has a score exactly when it is graded", "invariant"
            )
        if graded and (self.graded_at is None or not self.graded_by):
            raise ValidationError.for_field(
                "graded_by", "A graded result needs graded_at and graded_by", "invariant"
            )
        if self.submitted_at is not None and self.status == ResultStatus.PENDING:
            raise ValidationError.for_field(
                "submitted_at", "A pending result cannot have a submission time", "invariant"
            )

    @classmethod
    def new_id(cls) -> str:
        return str(uuid.uuid4())

    @classmethod
    def pending(cls, assessment_id: str, student_id: str) -> 'AssessmentResult':
        return cls(id=cls.new_id(), assessment_id=assessment_id, student_id=student_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a dictionary."""
        return {
            'id': self.id,
            'assessment_id': self.assessment_id,
            'student_id': self.student_id,
            'status': self.status.value,
            'submitted_at': _isoformat(self.submitted_at),
            'graded_at': _isoformat(self.graded_at),
            'graded_by': self.graded_by,
            'score': self.score,
            'feedback': self.feedback,
            'attachment_url': self.attachment_url,
            'revision': self.revision,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AssessmentResult':
        """Create an AssessmentResult from a dictionary."""
        return cls(
            id=data['id'],
            assessment_id=data['assessment_id'],
            student_id=data['student_id'],
            status=ResultStatus(data.get('status', ResultStatus.PENDING.value)),
            submitted_at=_parse_datetime(data.get('submitted_at')),
            graded_at=_parse_datetime(data.get('graded_at')),
            graded_by=data.get('graded_by'),
            score=data.get('score'),
            feedback=data.get('feedback'),
            attachment_url=data.get('attachment_url'),
            revision=int(data.get('revision', 0)),
        )
