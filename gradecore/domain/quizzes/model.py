"""
Quiz Domain Model Module

This module defines the quiz definition, the per-type authoring defaults and
the record of a student's completed attempt.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import uuid

from gradecore.domain.questions.model import Question


class QuizType(enum.Enum):
    """Kind of quiz; fixed once the quiz exists."""
    PRACTICE = "practice"
    FINAL = "final"


# Soft defaults applied when the author leaves a field out
TYPE_DEFAULTS: Dict[QuizType, Dict[str, Any]] = {
    QuizType.PRACTICE: {
        "time_limit_minutes": 30,
        "passing_score_percent": 70,
        "is_required": False,
        "allow_retake": True,
        "show_answers_after_completion": True,
    },
    QuizType.FINAL: {
        "time_limit_minutes": 60,
        "passing_score_percent": 70,
        "is_required": True,
        "allow_retake": False,
        "show_answers_after_completion": False,
    },
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


@dataclass
class QuizDefinition:
    """
    Represents a structured, auto-gradable quiz.

    Attributes:
        id: Unique identifier for the quiz
        subject_id: The subject that owns the quiz
        title: Quiz title
        quiz_type: Practice or final
        module_id: Optional module within the subject
        description: Free-text description
        instructions: Instructions shown before the attempt
        time_limit_minutes: Time allowed, enforced by the delivery layer
        passing_score_percent: Minimum percent to pass
        is_required: Whether the quiz counts towards completion
        is_active: Whether students may attempt it
        allow_retake: Whether more than one attempt is allowed
        max_attempts: Attempt cap when retakes are allowed (0 = unlimited)
        shuffle_questions: Whether questions are shuffled per presentation
        show_answers_after_completion: Whether correct answers are revealed
        questions: Ordered questions of the quiz
        created_at: When the quiz was created
        updated_at: When the quiz was last updated
    """
    id: str
    subject_id: str
    title: str
    quiz_type: QuizType = QuizType.PRACTICE
    module_id: Optional[str] = None
    description: str = ""
    instructions: str = ""
    time_limit_minutes: int = 30
    passing_score_percent: int = 70
    is_required: bool = False
    is_active: bool = True
    allow_retake: bool = True
    max_attempts: int = 0
    shuffle_questions: bool = False
    show_answers_after_completion: bool = True
    questions: List[Question] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def new_id(cls) -> str:
        return str(uuid.uuid4())

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)

    @property
    def attempt_limit(self) -> Optional[int]:
        """Attempts a student gets; None means unlimited."""
        if not self.allow_retake:
            return 1
        return self.max_attempts or None

    def settings_dict(self) -> Dict[str, Any]:
        """Author-editable fields, in the shape accepted by validate_quiz."""
        return {
            'subject_id': self.subject_id,
            'module_id': self.module_id,
            'title': self.title,
            'description': self.description,
            'instructions': self.instructions,
            'quiz_type': self.quiz_type.value,
            'time_limit_minutes': self.time_limit_minutes,
            'passing_score_percent': self.passing_score_percent,
            'is_required': self.is_required,
            'is_active': self.is_active,
            'allow_retake': self.allow_retake,
            'max_attempts': self.max_attempts,
            'shuffle_questions': self.shuffle_questions,
            'show_answers_after_completion': self.show_answers_after_completion,
        }

    def to_dict(self, include_questions: bool = True) -> Dict[str, Any]:
        """
        Convert the quiz to a dictionary.

        Args:
            include_questions: Whether to embed the question list

        Returns:
            Dictionary representation of the quiz
        """
        data = {'id': self.id, **self.settings_dict()}
        if include_questions:
            data['questions'] = [question.to_dict() for question in self.questions]
        data['created_at'] = self.created_at.isoformat()
        data['updated_at'] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuizDefinition':
        """
        Create a QuizDefinition from a dictionary.

        Args:
            data: Dictionary containing quiz data

        Returns:
            A QuizDefinition instance
        """
        quiz_type = QuizType(data.get('quiz_type', QuizType.PRACTICE.value))
        defaults = TYPE_DEFAULTS[quiz_type]

        return cls(
            id=data['id'],
            subject_id=data['subject_id'],
            title=data['title'],
            quiz_type=quiz_type,
            module_id=data.get('module_id'),
            description=data.get('description', ''),
            instructions=data.get('instructions', ''),
            time_limit_minutes=data.get('time_limit_minutes', defaults['time_limit_minutes']),
            passing_score_percent=data.get('passing_score_percent', defaults['passing_score_percent']),
            is_required=data.get('is_required', defaults['is_required']),
            is_active=data.get('is_active', True),
            allow_retake=data.get('allow_retake', defaults['allow_retake']),
            max_attempts=data.get('max_attempts', 0),
            shuffle_questions=data.get('shuffle_questions', False),
            show_answers_after_completion=data.get(
                'show_answers_after_completion', defaults['show_answers_after_completion']
            ),
            questions=[Question.from_dict(item) for item in data.get('questions', [])],
            created_at=_parse_datetime(data.get('created_at')) or _utcnow(),
            updated_at=_parse_datetime(data.get('updated_at')) or _utcnow(),
        )


@dataclass
class QuizAttempt:
    """
    One completed pass through a quiz by a student.

    Answers map question ids to the selected option indices.
    """
    id: str
    quiz_id: str
    student_id: str
    attempt_number: int
    answers: Dict[str, List[int]]
    raw_score: int
    total_points: int
    percent: int
    passed: bool
    completed_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def new_id(cls) -> str:
        return str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'quiz_id': self.quiz_id,
            'student_id': self.student_id,
            'attempt_number': self.attempt_number,
            'answers': {qid: list(indices) for qid, indices in self.answers.items()},
            'raw_score': self.raw_score,
            'total_points': self.total_points,
            'percent': self.percent,
            'passed': self.passed,
            'completed_at': self.completed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuizAttempt':
        return cls(
            id=data['id'],
            quiz_id=data['quiz_id'],
            student_id=data['student_id'],
            attempt_number=int(data['attempt_number']),
            answers={qid: [int(i) for i in indices] for qid, indices in data.get('answers', {}).items()},
            raw_score=int(data['raw_score']),
            total_points=int(data['total_points']),
            percent=int(data['percent']),
            passed=bool(data['passed']),
            completed_at=_parse_datetime(data.get('completed_at')) or _utcnow(),
        )
