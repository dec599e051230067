"""
Service layer for GradeCore.

Async orchestration of the domain rules over the repositories.
"""

from .quizzes import AttemptOutcome, QuizService
from .grading import GradingService

__all__ = ['AttemptOutcome', 'QuizService', 'GradingService']
