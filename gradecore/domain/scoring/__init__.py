"""
Scoring module for GradeCore.

Pure scoring of quiz attempts and score bounds for manual grading.
"""

from .engine import (
    QuizScore,
    build_attempt_feedback,
    is_answer_correct,
    score_quiz_attempt,
    selected_indices,
    validate_assessment_score,
)

__all__ = [
    'QuizScore',
    'build_attempt_feedback',
    'is_answer_correct',
    'score_quiz_attempt',
    'selected_indices',
    'validate_assessment_score',
]
