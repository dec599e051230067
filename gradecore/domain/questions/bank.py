"""
Question Bank

Validation and ordering rules for quiz questions, plus a repository-backed
bank that applies them when authors add, edit, remove or move questions.
"""

from dataclasses import replace
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence

from pydantic import Field

from gradecore.common.clock import Clock, SystemClock
from gradecore.common.error_handling import (
    IndexOutOfRangeError,
    NoCorrectOptionError,
    NotFoundError,
    ValidationError,
)
from gradecore.common.logger import app_logger
from gradecore.common.validation import BaseValidationModel, parse_model

from .model import Difficulty, MultipleChoice, Option, Question, QuestionType, TrueFalse
from .repository import QuestionRepository

logger = app_logger.getChild("domain.questions")


class OptionInput(BaseValidationModel):
    """Option as supplied by an author."""
    text: str = ""
    is_correct: bool = False


class QuestionInput(BaseValidationModel):
    """Question as supplied by an author."""
    quiz_id: str = Field(min_length=1)
    text: str = Field(min_length=3)
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: List[OptionInput] = Field(min_length=2)
    explanation: Optional[str] = None
    points: int = Field(default=10, ge=1, le=100)
    difficulty: int = Field(default=Difficulty.EASY.value, ge=1, le=5)
    order: Optional[int] = Field(default=None, ge=1)


def validate_question(
    data: Mapping[str, Any],
    question_id: Optional[str] = None,
    default_order: int = 1,
    now: Optional[datetime] = None,
) -> Question:
    """
    Validate authoring input and build a Question.

    True/false questions always get the canonical True/False pair; the caller
    only decides which one is correct through the first two options' flags.

    Raises:
        ValidationError: malformed input
        NoCorrectOptionError: no option is marked correct
    """
    payload = parse_model(QuestionInput, data, "question")

    if not any(option.is_correct for option in payload.options):
        raise NoCorrectOptionError(context={"quiz_id": payload.quiz_id})

    if payload.question_type == QuestionType.TRUE_FALSE:
        true_flag = payload.options[0].is_correct
        false_flag = payload.options[1].is_correct
        if true_flag == false_flag:
            raise ValidationError.for_field(
                "options",
                "A true/false question needs exactly one of True or False marked correct",
            )
        kind = TrueFalse(correct_is_true=true_flag)
    else:
        blank = [i for i, option in enumerate(payload.options) if not option.text]
        if blank:
            raise ValidationError(
                "Option text is required",
                errors=[
                    {"field": f"options.{i}.text", "message": "Option text is required", "type": "missing"}
                    for i in blank
                ],
            )
        kind = MultipleChoice(
            options=tuple(Option(option.text, option.is_correct) for option in payload.options)
        )

    timestamps = {"created_at": now, "updated_at": now} if now else {}
    return Question(
        id=question_id or Question.new_id(),
        quiz_id=payload.quiz_id,
        text=payload.text,
        kind=kind,
        points=payload.points,
        difficulty=Difficulty(payload.difficulty),
        order=payload.order or default_order,
        explanation=payload.explanation or None,
        **timestamps,
    )


def renumber(questions: Sequence[Question]) -> List[Question]:
    """Assign contiguous 1-based positions in the given sequence order."""
    return [
        question if question.order == position else replace(question, order=position)
        for position, question in enumerate(questions, start=1)
    ]


def next_order(questions: Sequence[Question]) -> int:
    """Position for a question appended to the sequence."""
    return len(questions) + 1


def place(questions: Sequence[Question], question: Question) -> List[Question]:
    """
    Insert a question at its requested position and renumber the sequence.

    `question.order` is read as a 1-based target; positions past the end
    append.
    """
    items = [q for q in questions if q.id != question.id]
    index = min(question.order, len(items) + 1) - 1
    items.insert(index, question)
    return renumber(items)


def reorder(questions: Sequence[Question], from_index: int, to_index: int) -> List[Question]:
    """
    Move one question and renumber the sequence from 1.

    Raises:
        IndexOutOfRangeError: either index is outside [0, len)
    """
    items = list(questions)
    for index in (from_index, to_index):
        if not 0 <= index < len(items):
            raise IndexOutOfRangeError(index, len(items))

    item = items.pop(from_index)
    items.insert(to_index, item)
    return renumber(items)


class QuestionBank:
    """Applies question rules against a question repository."""

    def __init__(self, repository: QuestionRepository, clock: Optional[Clock] = None):
        self.repository = repository
        self.clock = clock or SystemClock()

    async def get(self, question_id: str) -> Question:
        question = await self.repository.get_by_id(question_id)
        if question is None:
            raise NotFoundError("Question", question_id)
        return question

    async def list_for_quiz(self, quiz_id: str) -> List[Question]:
        return await self.repository.find_by_quiz(quiz_id)

    async def add(self, quiz_id: str, data: Mapping[str, Any]) -> Question:
        existing = await self.repository.find_by_quiz(quiz_id)
        question = validate_question(
            dict(data, quiz_id=quiz_id),
            default_order=next_order(existing),
            now=self.clock.now(),
        )
        return await self._store(existing, question, "Added")

    async def update(self, question_id: str, data: Mapping[str, Any]) -> Question:
        current = await self.get(question_id)
        return await self._store(
            await self.repository.find_by_quiz(current.quiz_id),
            self.revise(current, data),
        )

    def revise(self, current: Question, data: Mapping[str, Any]) -> Question:
        """Validate an edit of `current` without storing it."""
        validated = validate_question(
            dict(data, quiz_id=current.quiz_id),
            question_id=current.id,
            default_order=current.order,
            now=self.clock.now(),
        )
        return replace(validated, created_at=current.created_at)

    async def _store(self, siblings: Sequence[Question], question: Question, verb: str = "Updated") -> Question:
        sequence = place(siblings, question)
        await self.repository.save_all(sequence)
        stored = next(q for q in sequence if q.id == question.id)
        logger.info(f"{verb} question {stored.id} of quiz {stored.quiz_id} at position {stored.order}")
        return stored

    async def remove(self, question_id: str) -> List[Question]:
        """Delete a question and close the gap it leaves; returns the remaining questions."""
        current = await self.get(question_id)
        await self.repository.delete(question_id)

        remaining = renumber(await self.repository.find_by_quiz(current.quiz_id))
        await self.repository.save_all(remaining)
        logger.info(f"Removed question {question_id}; {len(remaining)} left in quiz {current.quiz_id}")
        return remaining

    async def move(self, quiz_id: str, from_index: int, to_index: int) -> List[Question]:
        questions = await self.repository.find_by_quiz(quiz_id)
        reordered = reorder(questions, from_index, to_index)
        await self.repository.save_all(reordered)
        return reordered

    async def delete_for_quiz(self, quiz_id: str) -> int:
        return await self.repository.delete_by_quiz(quiz_id)
