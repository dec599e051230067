"""
Functional tests for the SQLAlchemy repositories.

These run against a real in-memory SQLite database through aiosqlite,
without mocks, and focus on:
- Mapping rows back into domain objects
- Ordering of questions, quizzes and attempts
- Revision checks on result writes
- Cascading deletes through the services
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import select

from gradecore import create_sql_services
from gradecore.common.error_handling import ConcurrentModificationError, ValidationError
from gradecore.config import Settings
from gradecore.database import (
    SqlAssessmentRepository,
    SqlAssessmentResultRepository,
    SqlQuestionRepository,
    SqlQuizAttemptRepository,
    SqlQuizRepository,
    session_scope,
)
from gradecore.database.models import AssessmentResultRow
from gradecore.database.session import get_engine_kwargs
from gradecore.domain.assessments import AssessmentResult, ResultStatus, create_assessment
from gradecore.domain.quizzes import QuizAttempt, validate_quiz
from gradecore.services import GradingService, QuizService

from conftest import START, make_question, make_true_false


@pytest.fixture
def repositories(session_factory):
    return {
        "quizzes": SqlQuizRepository(session_factory),
        "questions": SqlQuestionRepository(session_factory),
        "attempts": SqlQuizAttemptRepository(session_factory),
        "assessments": SqlAssessmentRepository(session_factory),
        "results": SqlAssessmentResultRepository(session_factory),
    }


def stored_quiz(quiz_id="quiz-1", subject_id="subject-1", created_at=START, **overrides):
    config = {"subject_id": subject_id, "title": "Stored quiz"}
    config.update(overrides)
    return validate_quiz(config, quiz_id=quiz_id, now=created_at)


class TestEngineOptions:
    def test_in_memory_sqlite_shares_one_connection(self):
        kwargs = get_engine_kwargs("sqlite+aiosqlite://", echo=False)

        assert kwargs["poolclass"].__name__ == "StaticPool"

    def test_postgres_pings_connections(self):
        kwargs = get_engine_kwargs("postgresql+asyncpg://db/gradecore", echo=True)

        assert kwargs["pool_pre_ping"] is True
        assert kwargs["echo"] is True


class TestQuizStorage:
    @pytest.mark.asyncio
    async def test_round_trip(self, repositories):
        quiz = stored_quiz(quiz_type="final", max_attempts=2, description="End of term")

        await repositories["quizzes"].save(quiz)
        loaded = await repositories["quizzes"].get_by_id(quiz.id)

        assert loaded == quiz
        assert loaded.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_missing(self, repositories):
        assert await repositories["quizzes"].get_by_id("missing") is None
        assert await repositories["quizzes"].delete("missing") is False

    @pytest.mark.asyncio
    async def test_save_overwrites(self, repositories):
        quiz = stored_quiz()
        await repositories["quizzes"].save(quiz)

        await repositories["quizzes"].save(replace(quiz, title="Renamed quiz"))

        assert (await repositories["quizzes"].get_by_id(quiz.id)).title == "Renamed quiz"

    @pytest.mark.asyncio
    async def test_find_by_subject_ordered_by_creation(self, repositories):
        await repositories["quizzes"].save(stored_quiz("quiz-b", created_at=START + timedelta(hours=1)))
        await repositories["quizzes"].save(stored_quiz("quiz-a", created_at=START + timedelta(hours=2)))
        await repositories["quizzes"].save(stored_quiz("quiz-c", created_at=START))
        await repositories["quizzes"].save(stored_quiz("quiz-x", subject_id="subject-2"))

        found = await repositories["quizzes"].find_by_subject("subject-1")

        assert [q.id for q in found] == ["quiz-c", "quiz-b", "quiz-a"]


class TestQuestionStorage:
    @pytest.mark.asyncio
    async def test_round_trip_keeps_kind(self, repositories):
        await repositories["quizzes"].save(stored_quiz())
        choice = make_question(order=1, correct=(1, 3), explanation="Both primes")
        true_false = make_true_false(order=2, answer=False)

        await repositories["questions"].save_all([choice, true_false])

        assert await repositories["questions"].get_by_id(choice.id) == choice
        assert await repositories["questions"].get_by_id(true_false.id) == true_false

    @pytest.mark.asyncio
    async def test_find_by_quiz_in_order(self, repositories):
        await repositories["quizzes"].save(stored_quiz())
        for order in (3, 1, 2):
            await repositories["questions"].save(make_question(order=order))

        found = await repositories["questions"].find_by_quiz("quiz-1")

        assert [q.order for q in found] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_delete(self, repositories):
        await repositories["quizzes"].save(stored_quiz())
        await repositories["questions"].save_all([make_question(order=1), make_question(order=2)])

        assert await repositories["questions"].delete("quiz-1-q1") is True
        assert await repositories["questions"].delete("quiz-1-q1") is False
        assert await repositories["questions"].delete_by_quiz("quiz-1") == 1


class TestAttemptStorage:
    def attempt(self, number, student_id="student-1"):
        return QuizAttempt(
            id=f"attempt-{student_id}-{number}",
            quiz_id="quiz-1",
            student_id=student_id,
            attempt_number=number,
            answers={"quiz-1-q1": [0], "quiz-1-q2": [1, 2]},
            raw_score=10,
            total_points=20,
            percent=50,
            passed=False,
            completed_at=START + timedelta(minutes=number),
        )

    @pytest.mark.asyncio
    async def test_history_and_counts(self, repositories):
        await repositories["quizzes"].save(stored_quiz())
        for attempt in (self.attempt(2), self.attempt(1), self.attempt(1, "student-2")):
            await repositories["attempts"].save(attempt)

        history = await repositories["attempts"].find_by_quiz_and_student("quiz-1", "student-1")

        assert [a.attempt_number for a in history] == [1, 2]
        assert history[0] == self.attempt(1)
        assert await repositories["attempts"].count_by_quiz("quiz-1") == 3
        assert await repositories["attempts"].delete_by_quiz("quiz-1") == 3
        assert await repositories["attempts"].count_by_quiz("quiz-1") == 0


class TestAssessmentStorage:
    @pytest.mark.asyncio
    async def test_round_trip(self, repositories, teacher):
        assessment = create_assessment(
            {
                "class_id": "class-1",
                "title": "Lab report",
                "type": "assignment",
                "total_points": 25,
                "available_from": datetime(2025, 5, 1, tzinfo=timezone.utc),
                "due_date": datetime(2025, 5, 15, 17, tzinfo=timezone.utc),
            },
            teacher,
            START,
            assessment_id="assessment-1",
        )

        await repositories["assessments"].save(assessment)

        assert await repositories["assessments"].get_by_id("assessment-1") == assessment
        assert [a.id for a in await repositories["assessments"].find_by_class("class-1")] == ["assessment-1"]
        assert await repositories["assessments"].find_by_class("class-2") == []
        assert [a.id for a in await repositories["assessments"].find_by_tenant("school-1")] == ["assessment-1"]
        assert await repositories["assessments"].find_by_tenant("school-2") == []


class TestResultRevisions:
    @pytest.fixture
    def pending(self):
        return AssessmentResult(id="result-1", assessment_id="assessment-1", student_id="student-1")

    @pytest_asyncio.fixture
    async def stored_assessment(self, repositories, teacher):
        assessment = create_assessment(
            {"class_id": "class-1", "title": "Essay"}, teacher, START, assessment_id="assessment-1"
        )
        await repositories["assessments"].save(assessment)
        return assessment

    @pytest.mark.asyncio
    async def test_insert_then_update(self, repositories, stored_assessment, pending):
        inserted = await repositories["results"].save(pending, 0)
        submitted = replace(inserted, status=ResultStatus.SUBMITTED, submitted_at=START)

        updated = await repositories["results"].save(submitted, inserted.revision)

        assert inserted.revision == 1
        assert updated.revision == 2
        assert await repositories["results"].get_by_id("result-1") == updated

    @pytest.mark.asyncio
    async def test_stale_revision_rejected(self, repositories, stored_assessment, pending):
        inserted = await repositories["results"].save(pending, 0)
        await repositories["results"].save(
            replace(inserted, status=ResultStatus.SUBMITTED, submitted_at=START), inserted.revision
        )

        with pytest.raises(ConcurrentModificationError) as exc_info:
            await repositories["results"].save(
                replace(inserted, status=ResultStatus.SUBMITTED, submitted_at=START + timedelta(hours=1)),
                inserted.revision,
            )

        assert exc_info.value.details["actual_revision"] == 2
        assert (await repositories["results"].get_by_id("result-1")).submitted_at == START

    @pytest.mark.asyncio
    async def test_insert_over_existing_id_conflicts(self, repositories, stored_assessment, pending):
        await repositories["results"].save(pending, 0)

        with pytest.raises(ConcurrentModificationError):
            await repositories["results"].save(pending, 0)

    @pytest.mark.asyncio
    async def test_one_result_per_student(self, repositories, stored_assessment, pending):
        await repositories["results"].save(pending, 0)

        with pytest.raises(ValidationError) as exc_info:
            await repositories["results"].save(replace(pending, id="result-2"), 0)

        assert exc_info.value.errors[0]["type"] == "duplicate"

    @pytest.mark.asyncio
    async def test_revision_column(self, repositories, stored_assessment, pending, session_factory):
        await repositories["results"].save(pending, 0)

        async with session_scope(session_factory) as session:
            revision = await session.scalar(
                select(AssessmentResultRow.revision).where(AssessmentResultRow.id == "result-1")
            )

        assert revision == 1

    @pytest.mark.asyncio
    async def test_find_by_student(self, repositories, stored_assessment, pending, teacher):
        other = create_assessment(
            {"class_id": "class-1", "title": "Quiz review"}, teacher, START, assessment_id="assessment-0"
        )
        await repositories["assessments"].save(other)
        await repositories["results"].save(pending, 0)
        await repositories["results"].save(
            AssessmentResult(id="result-2", assessment_id="assessment-0", student_id="student-1"), 0
        )
        await repositories["results"].save(
            AssessmentResult(id="result-3", assessment_id="assessment-0", student_id="student-2"), 0
        )

        found = await repositories["results"].find_by_student("student-1")

        assert [r.id for r in found] == ["result-2", "result-1"]
        assert await repositories["results"].find_by_student("student-9") == []


class TestServicesOnSql:
    @pytest.mark.asyncio
    async def test_quiz_flow_and_cascade(self, repositories, clock, test_settings):
        service = QuizService(
            repositories["quizzes"], repositories["questions"], repositories["attempts"],
            clock=clock, config=test_settings,
        )
        quiz = await service.create_quiz({"subject_id": "subject-1", "title": "Stored flow"})
        question = await service.add_question(quiz.id, {
            "text": "Pick the first",
            "options": [{"text": "First", "is_correct": True}, {"text": "Second"}],
        })

        outcome = await service.submit_attempt(quiz.id, "student-1", {question.id: [0]})

        assert outcome.score.percent == 100
        assert await service.delete_quiz(quiz.id) is True
        assert await repositories["questions"].find_by_quiz(quiz.id) == []
        assert await repositories["attempts"].count_by_quiz(quiz.id) == 0

    @pytest.mark.asyncio
    async def test_grading_flow(self, repositories, clock, test_settings, teacher):
        service = GradingService(
            repositories["assessments"], repositories["results"], clock=clock, config=test_settings,
        )
        assessment = await service.create_assessment({"class_id": "class-1", "title": "Poster"}, teacher)
        [result] = await service.enroll(assessment.id, ["student-1"])
        await service.submit(result.id)

        graded = await service.grade_latest(result.id, teacher.user_id, 64, "Clear layout")

        assert graded.revision == 3
        assert (await service.summarize_results(assessment.id)).average_score == 64
        assert await service.delete_assessment(assessment.id) is True
        assert await repositories["results"].find_by_assessment(assessment.id) == []

    @pytest.mark.asyncio
    async def test_explicit_question_position(self, repositories, clock, test_settings):
        service = QuizService(
            repositories["quizzes"], repositories["questions"], repositories["attempts"],
            clock=clock, config=test_settings,
        )
        quiz = await service.create_quiz({"subject_id": "subject-1", "title": "Stored order"})
        options = [{"text": "Yes", "is_correct": True}, {"text": "No"}]
        first = await service.add_question(quiz.id, {"text": "First one", "options": options})
        second = await service.add_question(quiz.id, {"text": "Second one", "options": options})

        inserted = await service.add_question(quiz.id, {"text": "Goes first", "options": options, "order": 1})

        stored = await repositories["questions"].find_by_quiz(quiz.id)
        assert inserted.order == 1
        assert [(q.id, q.order) for q in stored] == [(inserted.id, 1), (first.id, 2), (second.id, 3)]


@pytest.mark.asyncio
async def test_sql_services_factory_returns_engine(clock):
    config = Settings(DATABASE_URL="sqlite+aiosqlite://", SQL_ECHO=True)

    quiz_service, grading_service, engine = await create_sql_services(clock=clock, config=config)
    try:
        quiz = await quiz_service.create_quiz({"subject_id": "s", "title": "Factory smoke"})

        assert (await quiz_service.get_quiz(quiz.id)).title == "Factory smoke"
        assert await grading_service.list_assessments("class-1") == []
        assert engine.sync_engine.echo is True
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_sql_services_factory_reuses_engine(clock):
    from gradecore.database import create_engine

    engine = create_engine("sqlite+aiosqlite://", echo=False)
    try:
        _, _, returned = await create_sql_services(clock=clock, engine=engine)

        assert returned is engine
    finally:
        await engine.dispose()
