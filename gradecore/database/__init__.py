"""
Database Module

SQLAlchemy tables, session management and repository adapters for GradeCore.
"""

from gradecore.database.base import Base, ModelBase, metadata
from gradecore.database.session import (
    create_engine,
    create_session_factory,
    drop_models,
    init_models,
    session_scope,
)
from gradecore.database.repositories import (
    SqlAssessmentRepository,
    SqlAssessmentResultRepository,
    SqlQuestionRepository,
    SqlQuizAttemptRepository,
    SqlQuizRepository,
)

__all__ = [
    'Base',
    'ModelBase',
    'metadata',
    'create_engine',
    'create_session_factory',
    'drop_models',
    'init_models',
    'session_scope',
    'SqlAssessmentRepository',
    'SqlAssessmentResultRepository',
    'SqlQuestionRepository',
    'SqlQuizAttemptRepository',
    'SqlQuizRepository',
]
