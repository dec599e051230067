"""
Quiz Definition Rules

Validation of quiz configuration, attempt gating and question presentation.
"""

import random
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import Field

from gradecore.common.error_handling import QuizLockedError, ValidationError
from gradecore.common.logger import app_logger
from gradecore.common.validation import BaseValidationModel, parse_model
from gradecore.domain.questions.model import Question

from .model import TYPE_DEFAULTS, QuizDefinition, QuizType

logger = app_logger.getChild("domain.quizzes")


class QuizInput(BaseValidationModel):
    """Quiz configuration as supplied by an author; None means "use the type default"."""
    subject_id: str = Field(min_length=1)
    module_id: Optional[str] = None
    title: str = Field(min_length=3)
    description: str = ""
    instructions: str = ""
    quiz_type: QuizType = QuizType.PRACTICE
    time_limit_minutes: Optional[int] = Field(default=None, ge=5, le=180)
    passing_score_percent: Optional[int] = Field(default=None, ge=1, le=100)
    is_required: Optional[bool] = None
    is_active: bool = True
    allow_retake: Optional[bool] = None
    max_attempts: int = Field(default=0, ge=0)
    shuffle_questions: bool = False
    show_answers_after_completion: Optional[bool] = None


def validate_quiz(
    config: Mapping[str, Any],
    quiz_id: Optional[str] = None,
    now: Optional[datetime] = None,
    questions: Optional[Sequence[Question]] = None,
) -> QuizDefinition:
    """
    Validate a quiz configuration and fill omitted fields from the type defaults.

    Raises:
        ValidationError: malformed configuration
    """
    payload = parse_model(QuizInput, config, "quiz")

    values = payload.model_dump()
    for key, default in TYPE_DEFAULTS[payload.quiz_type].items():
        if values[key] is None:
            values[key] = default

    timestamps = {"created_at": now, "updated_at": now} if now else {}
    return QuizDefinition(
        id=quiz_id or QuizDefinition.new_id(),
        questions=list(questions or []),
        **values,
        **timestamps,
    )


def apply_quiz_update(
    quiz: QuizDefinition,
    changes: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> QuizDefinition:
    """
    Apply a partial update and re-validate the whole configuration.

    The quiz type cannot change; a quiz of another type must be created instead.
    """
    if "quiz_type" in changes:
        requested = changes["quiz_type"]
        requested = requested.value if isinstance(requested, QuizType) else requested
        if requested != quiz.quiz_type.value:
            raise ValidationError.for_field(
                "quiz_type",
                "Quiz type cannot be changed; delete the quiz and create a new one",
                "immutable",
            )

    merged = quiz.settings_dict()
    merged.update(changes)
    updated = validate_quiz(merged, quiz_id=quiz.id, now=now, questions=quiz.questions)
    return replace(updated, created_at=quiz.created_at)


def can_attempt(quiz: QuizDefinition, attempt_history: Sequence[Any]) -> bool:
    """Whether a student with the given attempt history may attempt the quiz."""
    if not quiz.is_active:
        return False

    attempts = len(attempt_history)
    if not quiz.allow_retake:
        return attempts < 1
    if quiz.max_attempts > 0 and attempts >= quiz.max_attempts:
        return False
    return True


def present_questions(quiz: QuizDefinition, rng: Optional[random.Random] = None) -> List[Question]:
    """
    Questions in the order a student sees them.

    Shuffled quizzes get a fresh permutation on every call; the stored order
    is never changed.
    """
    ordered = sorted(quiz.questions, key=lambda q: (q.order, q.id))
    if quiz.shuffle_questions:
        (rng or random.Random()).shuffle(ordered)
    return ordered


def ensure_structure_editable(
    quiz: QuizDefinition,
    attempt_count: int,
    locked: bool = True,
    operation: str = "edit_questions",
) -> None:
    """
    Refuse to add, remove or reorder questions once students have attempted the quiz.

    Raises:
        QuizLockedError: locking is enabled and attempts exist
    """
    if locked and attempt_count > 0:
        logger.warning(f"Rejected {operation} on quiz {quiz.id}: {attempt_count} attempt(s) recorded")
        raise QuizLockedError(quiz.id, attempt_count, operation)


def scoring_key(question: Question) -> Tuple[Any, ...]:
    """The parts of a question that recorded attempts were scored against."""
    return (
        question.question_type,
        question.points,
        len(question.options),
        question.correct_indices,
        question.order,
    )


def ensure_question_editable(
    quiz: QuizDefinition,
    current: Question,
    revised: Question,
    attempt_count: int,
    locked: bool = True,
) -> None:
    """
    Once attempts exist only wording may change: text, option text and the
    explanation. Type, points, options count, answer key and position stay.

    Raises:
        QuizLockedError: locking is enabled, attempts exist and the edit changes scoring
    """
    if scoring_key(current) != scoring_key(revised):
        ensure_structure_editable(quiz, attempt_count, locked, operation="update_question")


def summarize_quiz(quiz: QuizDefinition) -> Dict[str, Any]:
    """Read model used in quiz listings."""
    summary = quiz.to_dict(include_questions=False)
    summary["question_count"] = quiz.question_count
    summary["total_points"] = quiz.total_points
    return summary
