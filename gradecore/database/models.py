"""
SQLAlchemy ORM models for the GradeCore storage adapter.

This module defines the tables backing the repository adapters:
- QuizRow: quiz configuration
- QuestionRow: questions of a quiz, options stored as JSON
- QuizAttemptRow: completed attempts with their answers
- AssessmentRow: open-ended assessments
- AssessmentResultRow: per-student results with their revision token
"""

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text
)
from sqlalchemy.schema import UniqueConstraint

from .base import ModelBase


class QuizRow(ModelBase):
    """Quiz configuration; questions live in their own table."""
    __tablename__ = "quizzes"

    id = Column(String(36), primary_key=True)
    subject_id = Column(String(36), nullable=False, index=True)
    module_id = Column(String(36), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    instructions = Column(Text, nullable=False, default="")
    quiz_type = Column(String(20), nullable=False)
    time_limit_minutes = Column(Integer, nullable=False)
    passing_score_percent = Column(Integer, nullable=False)
    is_required = Column(Boolean, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    allow_retake = Column(Boolean, nullable=False)
    max_attempts = Column(Integer, nullable=False, default=0)
    shuffle_questions = Column(Boolean, nullable=False, default=False)
    show_answers_after_completion = Column(Boolean, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class QuestionRow(ModelBase):
    """A question of a quiz."""
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    question_type = Column(String(20), nullable=False)
    options = Column(JSON, nullable=False)
    explanation = Column(Text, nullable=True)
    points = Column(Integer, nullable=False, default=10)
    difficulty = Column(Integer, nullable=False, default=2)
    order = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class QuizAttemptRow(ModelBase):
    """A completed quiz attempt."""
    __tablename__ = "quiz_attempts"

    id = Column(String(36), primary_key=True)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(String(36), nullable=False)
    attempt_number = Column(Integer, nullable=False)
    answers = Column(JSON, nullable=False)
    raw_score = Column(Integer, nullable=False)
    total_points = Column(Integer, nullable=False)
    percent = Column(Integer, nullable=False)
    passed = Column(Boolean, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(quiz_id, student_id, attempt_number),
        Index("idx_quiz_attempts_quiz_student", quiz_id, student_id),
    )


class AssessmentRow(ModelBase):
    """An open-ended assessment."""
    __tablename__ = "assessments"

    id = Column(String(36), primary_key=True)
    class_id = Column(String(36), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    type = Column(String(20), nullable=False)
    total_points = Column(Float, nullable=False)
    weight = Column(Float, nullable=False)
    available_from = Column(DateTime(timezone=True), nullable=True)
    available_to = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    instructions = Column(Text, nullable=False, default="")
    created_by = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class AssessmentResultRow(ModelBase):
    """A student's result on an assessment."""
    __tablename__ = "assessment_results"

    id = Column(String(36), primary_key=True)
    assessment_id = Column(
        String(36), ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    graded_by = Column(String(36), nullable=True)
    score = Column(Float, nullable=True)
    feedback = Column(Text, nullable=True)
    attachment_url = Column(String(1024), nullable=True)
    revision = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(assessment_id, student_id),
    )
