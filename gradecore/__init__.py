"""
GradeCore Assessment and Quiz Evaluation Core

This package holds the gradable-work core of an education-management
platform.

The core features:
1. Question authoring with correctness rules and contiguous ordering
2. Quiz configuration with per-type defaults, attempt gating and shuffling
3. Open-ended assessments with availability windows and status read models
4. A grading lifecycle for results with optimistic concurrency
5. All-or-nothing quiz scoring with an inclusive passing threshold
"""

import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

__version__ = "0.1.0"


def create_memory_services(clock=None, config=None) -> Tuple["QuizService", "GradingService"]:
    """
    Build the services on top of in-memory repositories.

    Intended for development and tests; nothing is persisted.
    """
    from gradecore.domain.assessments import MemoryAssessmentRepository, MemoryAssessmentResultRepository
    from gradecore.domain.questions import MemoryQuestionRepository
    from gradecore.domain.quizzes import MemoryQuizAttemptRepository, MemoryQuizRepository
    from gradecore.services import GradingService, QuizService

    quiz_service = QuizService(
        MemoryQuizRepository(),
        MemoryQuestionRepository(),
        MemoryQuizAttemptRepository(),
        clock=clock,
        config=config,
    )
    grading_service = GradingService(
        MemoryAssessmentRepository(),
        MemoryAssessmentResultRepository(),
        clock=clock,
        config=config,
    )
    logger.info("Created services with in-memory repositories")
    return quiz_service, grading_service


async def create_sql_services(
    database_url: Optional[str] = None,
    clock=None,
    config=None,
    engine=None,
) -> Tuple["QuizService", "GradingService", "AsyncEngine"]:
    """
    Build the services on top of the SQLAlchemy repositories.

    Tables are created if they do not exist yet. The engine is returned so
    the caller can dispose of it on shutdown.

    Args:
        database_url: Async SQLAlchemy URL; defaults to config or settings DATABASE_URL
        clock: Optional clock provider
        config: Optional settings object; also supplies SQL_ECHO
        engine: Existing engine to use instead of creating one

    Returns:
        The quiz service, the grading service and the engine they share
    """
    from gradecore.database import (
        SqlAssessmentRepository,
        SqlAssessmentResultRepository,
        SqlQuestionRepository,
        SqlQuizAttemptRepository,
        SqlQuizRepository,
        create_engine,
        create_session_factory,
        init_models,
    )
    from gradecore.services import GradingService, QuizService

    if engine is None:
        engine = create_engine(
            database_url or (config.DATABASE_URL if config else None),
            echo=config.SQL_ECHO if config else None,
        )
    await init_models(engine)
    factory = create_session_factory(engine)

    quiz_service = QuizService(
        SqlQuizRepository(factory),
        SqlQuestionRepository(factory),
        SqlQuizAttemptRepository(factory),
        clock=clock,
        config=config,
    )
    grading_service = GradingService(
        SqlAssessmentRepository(factory),
        SqlAssessmentResultRepository(factory),
        clock=clock,
        config=config,
    )
    logger.info("Created services with SQLAlchemy repositories")
    return quiz_service, grading_service, engine
