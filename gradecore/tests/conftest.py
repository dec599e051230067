"""
Shared fixtures for the GradeCore tests.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from gradecore.common.auth import Actor, UserRole
from gradecore.common.clock import FixedClock
from gradecore.config import Settings
from gradecore.domain.questions import validate_question
from gradecore.domain.quizzes import validate_quiz

START = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def teacher():
    return Actor(user_id="teacher-1", role=UserRole.TEACHER, tenant_id="school-1")


@pytest.fixture
def test_settings():
    return Settings(
        LOCK_QUIZ_STRUCTURE_AFTER_ATTEMPTS=True,
        GRADE_RETRY_ATTEMPTS=1,
        GRADE_RETRY_DELAY_SECONDS=0,
    )


def make_question(quiz_id="quiz-1", order=1, points=10, correct=(0,), question_id=None, **overrides):
    """Multiple-choice question with four options, the given ones correct."""
    data = {
        "quiz_id": quiz_id,
        "text": f"Question number {order}",
        "options": [{"text": f"Option {i}", "is_correct": i in correct} for i in range(4)],
        "points": points,
        "order": order,
    }
    data.update(overrides)
    return validate_question(data, question_id=question_id or f"{quiz_id}-q{order}", now=START)


def make_true_false(quiz_id="quiz-1", order=1, answer=True, points=10):
    return validate_question(
        {
            "quiz_id": quiz_id,
            "text": "The sky is blue",
            "question_type": "true_false",
            "options": [{"text": "", "is_correct": answer}, {"text": "", "is_correct": not answer}],
            "points": points,
            "order": order,
        },
        question_id=f"{quiz_id}-tf{order}",
        now=START,
    )


@pytest.fixture
def question_factory():
    return make_question


@pytest.fixture
def sample_quiz():
    """Practice quiz with two 10-point questions; option 0 is correct on both."""
    questions = [make_question(order=1), make_question(order=2)]
    return validate_quiz(
        {"subject_id": "subject-1", "title": "Algebra basics"},
        quiz_id="quiz-1",
        now=START,
        questions=questions,
    )


@pytest_asyncio.fixture
async def session_factory():
    """Session factory on a fresh in-memory SQLite database."""
    from gradecore.database import create_engine, create_session_factory, init_models

    engine = create_engine("sqlite+aiosqlite://", echo=False)
    await init_models(engine)
    yield create_session_factory(engine)
    await engine.dispose()
