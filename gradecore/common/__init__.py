"""
Common Components for GradeCore

This package contains infrastructure shared by every GradeCore module.

Key components:
1. Logging - Centralized logging configuration
2. Error Handling - The GradeCore exception hierarchy and helpers
3. Validation - Pydantic-based input validation
4. Clock - Injectable time providers
5. Auth - The acting identity supplied by the caller
"""

# Initialize logging
from gradecore.common.logger import app_logger

from gradecore.common.error_handling import (
    ErrorCode, ErrorSeverity, GradeCoreError, ValidationError, NoCorrectOptionError,
    InvalidDateRangeError, IndexOutOfRangeError, ScoreOutOfRangeError,
    IncompleteAnswersError, InvalidTransitionError, QuizLockedError,
    AttemptLimitReachedError, ConcurrentModificationError, NotFoundError,
    DatabaseError, error_response, log_error, retry
)

from gradecore.common.clock import Clock, FixedClock, SystemClock, ensure_utc

from gradecore.common.auth import Actor, UserRole

__all__ = [
    'app_logger',
    'ErrorCode', 'ErrorSeverity', 'GradeCoreError', 'ValidationError', 'NoCorrectOptionError',
    'InvalidDateRangeError', 'IndexOutOfRangeError', 'ScoreOutOfRangeError',
    'IncompleteAnswersError', 'InvalidTransitionError', 'QuizLockedError',
    'AttemptLimitReachedError', 'ConcurrentModificationError', 'NotFoundError',
    'DatabaseError', 'error_response', 'log_error', 'retry',
    'Clock', 'FixedClock', 'SystemClock', 'ensure_utc',
    'Actor', 'UserRole',
]
