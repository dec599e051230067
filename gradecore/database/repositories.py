"""
SQLAlchemy Repositories

Async implementations of the domain repository interfaces on top of the
tables in gradecore.database.models. Result writes use a conditional
UPDATE on the revision column so concurrent graders cannot overwrite each
other.
"""

import functools
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, TypeVar, cast

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from gradecore.common.clock import ensure_utc
from gradecore.common.error_handling import (
    ConcurrentModificationError,
    DatabaseError,
    GradeCoreError,
    ValidationError,
)
from gradecore.domain.assessments.model import (
    AssessmentDefinition,
    AssessmentResult,
    AssessmentType,
    ResultStatus,
)
from gradecore.domain.assessments.repository import AssessmentRepository, AssessmentResultRepository
from gradecore.domain.questions.model import Difficulty, Option, Question, QuestionType, kind_from_options
from gradecore.domain.questions.repository import QuestionRepository
from gradecore.domain.quizzes.model import QuizAttempt, QuizDefinition, QuizType
from gradecore.domain.quizzes.repository import QuizAttemptRepository, QuizRepository

from .models import AssessmentResultRow, AssessmentRow, QuestionRow, QuizAttemptRow, QuizRow
from .session import session_scope

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def translate_errors(operation: str) -> Callable[[F], F]:
    """Turn driver errors into DatabaseError; domain errors pass through."""
    def decorator(func_: F) -> F:
        @functools.wraps(func_)
        async def wrapper(*args, **kwargs):
            try:
                return await func_(*args, **kwargs)
            except GradeCoreError:
                raise
            except SQLAlchemyError as e:
                logger.error(f"Database error during {operation}: {e}", exc_info=True)
                raise DatabaseError(operation, cause=e) from e
        return cast(F, wrapper)
    return decorator


class SqlRepository:
    """Shared session handling for the SQLAlchemy repositories."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    def session(self):
        return session_scope(self.session_factory)


# --- Questions ---

def question_to_row(question: Question) -> Dict[str, Any]:
    return {
        "id": question.id,
        "quiz_id": question.quiz_id,
        "text": question.text,
        "question_type": question.question_type.value,
        "options": [option.to_dict() for option in question.options],
        "explanation": question.explanation,
        "points": question.points,
        "difficulty": question.difficulty.value,
        "order": question.order,
        "created_at": question.created_at,
        "updated_at": question.updated_at,
    }


def row_to_question(row: QuestionRow) -> Question:
    options = [Option(item["text"], bool(item["is_correct"])) for item in row.options]
    return Question(
        id=row.id,
        quiz_id=row.quiz_id,
        text=row.text,
        kind=kind_from_options(QuestionType(row.question_type), options),
        points=row.points,
        difficulty=Difficulty(row.difficulty),
        order=row.order,
        explanation=row.explanation,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


class SqlQuestionRepository(SqlRepository, QuestionRepository):
    """QuestionRepository backed by the questions table."""

    @translate_errors("question.get")
    async def get_by_id(self, question_id: str) -> Optional[Question]:
        async with self.session() as session:
            row = await session.get(QuestionRow, question_id)
            return row_to_question(row) if row else None

    @translate_errors("question.save")
    async def save(self, question: Question) -> Question:
        async with self.session() as session:
            await session.merge(QuestionRow(**question_to_row(question)))
        return question

    @translate_errors("question.save_all")
    async def save_all(self, questions: List[Question]) -> List[Question]:
        async with self.session() as session:
            for question in questions:
                await session.merge(QuestionRow(**question_to_row(question)))
        return list(questions)

    @translate_errors("question.delete")
    async def delete(self, question_id: str) -> bool:
        async with self.session() as session:
            result = await session.execute(sql_delete(QuestionRow).where(QuestionRow.id == question_id))
            return result.rowcount > 0

    @translate_errors("question.find_by_quiz")
    async def find_by_quiz(self, quiz_id: str) -> List[Question]:
        async with self.session() as session:
            rows = await session.scalars(
                select(QuestionRow)
                .where(QuestionRow.quiz_id == quiz_id)
                .order_by(QuestionRow.order, QuestionRow.id)
            )
            return [row_to_question(row) for row in rows]

    @translate_errors("question.delete_by_quiz")
    async def delete_by_quiz(self, quiz_id: str) -> int:
        async with self.session() as session:
            result = await session.execute(sql_delete(QuestionRow).where(QuestionRow.quiz_id == quiz_id))
            return result.rowcount


# --- Quizzes and attempts ---

def quiz_to_row(quiz: QuizDefinition) -> Dict[str, Any]:
    data = quiz.settings_dict()
    data.update({"id": quiz.id, "created_at": quiz.created_at, "updated_at": quiz.updated_at})
    return data


def row_to_quiz(row: QuizRow) -> QuizDefinition:
    return QuizDefinition(
        id=row.id,
        subject_id=row.subject_id,
        title=row.title,
        quiz_type=QuizType(row.quiz_type),
        module_id=row.module_id,
        description=row.description,
        instructions=row.instructions,
        time_limit_minutes=row.time_limit_minutes,
        passing_score_percent=row.passing_score_percent,
        is_required=row.is_required,
        is_active=row.is_active,
        allow_retake=row.allow_retake,
        max_attempts=row.max_attempts,
        shuffle_questions=row.shuffle_questions,
        show_answers_after_completion=row.show_answers_after_completion,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


class SqlQuizRepository(SqlRepository, QuizRepository):
    """QuizRepository backed by the quizzes table."""

    @translate_errors("quiz.get")
    async def get_by_id(self, quiz_id: str) -> Optional[QuizDefinition]:
        async with self.session() as session:
            row = await session.get(QuizRow, quiz_id)
            return row_to_quiz(row) if row else None

    @translate_errors("quiz.save")
    async def save(self, quiz: QuizDefinition) -> QuizDefinition:
        async with self.session() as session:
            await session.merge(QuizRow(**quiz_to_row(quiz)))
        return quiz

    @translate_errors("quiz.delete")
    async def delete(self, quiz_id: str) -> bool:
        async with self.session() as session:
            result = await session.execute(sql_delete(QuizRow).where(QuizRow.id == quiz_id))
            return result.rowcount > 0

    @translate_errors("quiz.find_by_subject")
    async def find_by_subject(self, subject_id: str) -> List[QuizDefinition]:
        async with self.session() as session:
            rows = await session.scalars(
                select(QuizRow)
                .where(QuizRow.subject_id == subject_id)
                .order_by(QuizRow.created_at, QuizRow.id)
            )
            return [row_to_quiz(row) for row in rows]


def row_to_attempt(row: QuizAttemptRow) -> QuizAttempt:
    return QuizAttempt(
        id=row.id,
        quiz_id=row.quiz_id,
        student_id=row.student_id,
        attempt_number=row.attempt_number,
        answers={qid: list(indices) for qid, indices in row.answers.items()},
        raw_score=row.raw_score,
        total_points=row.total_points,
        percent=row.percent,
        passed=row.passed,
        completed_at=ensure_utc(row.completed_at),
    )


class SqlQuizAttemptRepository(SqlRepository, QuizAttemptRepository):
    """QuizAttemptRepository backed by the quiz_attempts table."""

    @translate_errors("quiz_attempt.get")
    async def get_by_id(self, attempt_id: str) -> Optional[QuizAttempt]:
        async with self.session() as session:
            row = await session.get(QuizAttemptRow, attempt_id)
            return row_to_attempt(row) if row else None

    @translate_errors("quiz_attempt.save")
    async def save(self, attempt: QuizAttempt) -> QuizAttempt:
        row = QuizAttemptRow(
            id=attempt.id,
            quiz_id=attempt.quiz_id,
            student_id=attempt.student_id,
            attempt_number=attempt.attempt_number,
            answers={qid: list(indices) for qid, indices in attempt.answers.items()},
            raw_score=attempt.raw_score,
            total_points=attempt.total_points,
            percent=attempt.percent,
            passed=attempt.passed,
            completed_at=attempt.completed_at,
        )
        async with self.session() as session:
            await session.merge(row)
        return attempt

    @translate_errors("quiz_attempt.find")
    async def find_by_quiz_and_student(self, quiz_id: str, student_id: str) -> List[QuizAttempt]:
        async with self.session() as session:
            rows = await session.scalars(
                select(QuizAttemptRow)
                .where(QuizAttemptRow.quiz_id == quiz_id, QuizAttemptRow.student_id == student_id)
                .order_by(QuizAttemptRow.attempt_number)
            )
            return [row_to_attempt(row) for row in rows]

    @translate_errors("quiz_attempt.count")
    async def count_by_quiz(self, quiz_id: str) -> int:
        async with self.session() as session:
            count = await session.scalar(
                select(func.count()).select_from(QuizAttemptRow).where(QuizAttemptRow.quiz_id == quiz_id)
            )
            return count or 0

    @translate_errors("quiz_attempt.delete_by_quiz")
    async def delete_by_quiz(self, quiz_id: str) -> int:
        async with self.session() as session:
            result = await session.execute(sql_delete(QuizAttemptRow).where(QuizAttemptRow.quiz_id == quiz_id))
            return result.rowcount


# --- Assessments and results ---

def assessment_to_row(assessment: AssessmentDefinition) -> Dict[str, Any]:
    data = assessment.settings_dict()
    data.update({
        "id": assessment.id,
        "tenant_id": assessment.tenant_id,
        "created_by": assessment.created_by,
        "created_at": assessment.created_at,
        "updated_at": assessment.updated_at,
    })
    return data


def row_to_assessment(row: AssessmentRow) -> AssessmentDefinition:
    return AssessmentDefinition(
        id=row.id,
        class_id=row.class_id,
        tenant_id=row.tenant_id,
        title=row.title,
        created_by=row.created_by,
        type=AssessmentType(row.type),
        description=row.description,
        total_points=row.total_points,
        weight=row.weight,
        available_from=row.available_from,
        available_to=row.available_to,
        due_date=row.due_date,
        is_active=row.is_active,
        instructions=row.instructions,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


class SqlAssessmentRepository(SqlRepository, AssessmentRepository):
    """AssessmentRepository backed by the assessments table."""

    @translate_errors("assessment.get")
    async def get_by_id(self, assessment_id: str) -> Optional[AssessmentDefinition]:
        async with self.session() as session:
            row = await session.get(AssessmentRow, assessment_id)
            return row_to_assessment(row) if row else None

    @translate_errors("assessment.save")
    async def save(self, assessment: AssessmentDefinition) -> AssessmentDefinition:
        async with self.session() as session:
            await session.merge(AssessmentRow(**assessment_to_row(assessment)))
        return assessment

    @translate_errors("assessment.delete")
    async def delete(self, assessment_id: str) -> bool:
        async with self.session() as session:
            result = await session.execute(sql_delete(AssessmentRow).where(AssessmentRow.id == assessment_id))
            return result.rowcount > 0

    @translate_errors("assessment.find_by_class")
    async def find_by_class(self, class_id: str) -> List[AssessmentDefinition]:
        async with self.session() as session:
            rows = await session.scalars(
                select(AssessmentRow)
                .where(AssessmentRow.class_id == class_id)
                .order_by(AssessmentRow.created_at, AssessmentRow.id)
            )
            return [row_to_assessment(row) for row in rows]

    @translate_errors("assessment.find_by_tenant")
    async def find_by_tenant(self, tenant_id: str) -> List[AssessmentDefinition]:
        async with self.session() as session:
            rows = await session.scalars(
                select(AssessmentRow)
                .where(AssessmentRow.tenant_id == tenant_id)
                .order_by(AssessmentRow.created_at, AssessmentRow.id)
            )
            return [row_to_assessment(row) for row in rows]


def result_values(result: AssessmentResult) -> Dict[str, Any]:
    return {
        "assessment_id": result.assessment_id,
        "student_id": result.student_id,
        "status": result.status.value,
        "submitted_at": result.submitted_at,
        "graded_at": result.graded_at,
        "graded_by": result.graded_by,
        "score": result.score,
        "feedback": result.feedback,
        "attachment_url": result.attachment_url,
    }


def row_to_result(row: AssessmentResultRow) -> AssessmentResult:
    return AssessmentResult(
        id=row.id,
        assessment_id=row.assessment_id,
        student_id=row.student_id,
        status=ResultStatus(row.status),
        submitted_at=row.submitted_at,
        graded_at=row.graded_at,
        graded_by=row.graded_by,
        score=row.score,
        feedback=row.feedback,
        attachment_url=row.attachment_url,
        revision=row.revision,
    )


class SqlAssessmentResultRepository(SqlRepository, AssessmentResultRepository):
    """AssessmentResultRepository with compare-and-swap writes on the revision column."""

    @translate_errors("assessment_result.get")
    async def get_by_id(self, result_id: str) -> Optional[AssessmentResult]:
        async with self.session() as session:
            row = await session.get(AssessmentResultRow, result_id)
            return row_to_result(row) if row else None

    @translate_errors("assessment_result.get_for_student")
    async def get_for_student(self, assessment_id: str, student_id: str) -> Optional[AssessmentResult]:
        async with self.session() as session:
            row = await session.scalar(
                select(AssessmentResultRow).where(
                    AssessmentResultRow.assessment_id == assessment_id,
                    AssessmentResultRow.student_id == student_id,
                )
            )
            return row_to_result(row) if row else None

    @translate_errors("assessment_result.find_by_assessment")
    async def find_by_assessment(self, assessment_id: str) -> List[AssessmentResult]:
        async with self.session() as session:
            rows = await session.scalars(
                select(AssessmentResultRow)
                .where(AssessmentResultRow.assessment_id == assessment_id)
                .order_by(AssessmentResultRow.student_id, AssessmentResultRow.id)
            )
            return [row_to_result(row) for row in rows]

    @translate_errors("assessment_result.find_by_student")
    async def find_by_student(self, student_id: str) -> List[AssessmentResult]:
        async with self.session() as session:
            rows = await session.scalars(
                select(AssessmentResultRow)
                .where(AssessmentResultRow.student_id == student_id)
                .order_by(AssessmentResultRow.assessment_id, AssessmentResultRow.id)
            )
            return [row_to_result(row) for row in rows]

    async def _insert(self, result: AssessmentResult) -> None:
        async with self.session() as session:
            duplicate = await session.scalar(
                select(AssessmentResultRow.id).where(
                    AssessmentResultRow.assessment_id == result.assessment_id,
                    AssessmentResultRow.student_id == result.student_id,
                )
            )
            if duplicate is not None:
                raise ValidationError.for_field(
                    "student_id",
                    f"Student {result.student_id} already has a result on assessment {result.assessment_id}",
                    "duplicate",
                )
            session.add(AssessmentResultRow(id=result.id, revision=1, **result_values(result)))

    @translate_errors("assessment_result.save")
    async def save(self, result: AssessmentResult, expected_revision: int) -> AssessmentResult:
        if expected_revision == 0 and await self.get_by_id(result.id) is None:
            try:
                await self._insert(result)
            except IntegrityError as e:
                # Lost an insert race for the same id
                raise ConcurrentModificationError("AssessmentResult", result.id, 0) from e
            return replace(result, revision=1)

        async with self.session() as session:
            outcome = await session.execute(
                update(AssessmentResultRow)
                .where(
                    AssessmentResultRow.id == result.id,
                    AssessmentResultRow.revision == expected_revision,
                )
                .values(revision=expected_revision + 1, **result_values(result))
                .execution_options(synchronize_session=False)
            )
            if outcome.rowcount != 1:
                actual = await session.scalar(
                    select(AssessmentResultRow.revision).where(AssessmentResultRow.id == result.id)
                )
                logger.warning(
                    f"Revision conflict on result {result.id}: expected {expected_revision}, found {actual}"
                )
                raise ConcurrentModificationError("AssessmentResult", result.id, expected_revision, actual)

        return replace(result, revision=expected_revision + 1)

    @translate_errors("assessment_result.delete_by_assessment")
    async def delete_by_assessment(self, assessment_id: str) -> int:
        async with self.session() as session:
            result = await session.execute(
                sql_delete(AssessmentResultRow).where(AssessmentResultRow.assessment_id == assessment_id)
            )
            return result.rowcount
