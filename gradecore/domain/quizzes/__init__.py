"""
Quiz domain module for GradeCore.

This module contains the quiz definition, its configuration rules, attempt
gating and the repositories for quizzes and attempts.
"""

from .model import TYPE_DEFAULTS, QuizAttempt, QuizDefinition, QuizType
from .definition import (
    apply_quiz_update,
    can_attempt,
    ensure_question_editable,
    ensure_structure_editable,
    present_questions,
    summarize_quiz,
    validate_quiz,
)
from .repository import QuizAttemptRepository, QuizRepository
from .memory_repository import MemoryQuizAttemptRepository, MemoryQuizRepository

__all__ = [
    'TYPE_DEFAULTS',
    'QuizAttempt',
    'QuizDefinition',
    'QuizType',
    'apply_quiz_update',
    'can_attempt',
    'ensure_question_editable',
    'ensure_structure_editable',
    'present_questions',
    'summarize_quiz',
    'validate_quiz',
    'QuizAttemptRepository',
    'QuizRepository',
    'MemoryQuizAttemptRepository',
    'MemoryQuizRepository',
]
