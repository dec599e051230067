"""
Question Domain Model Module

This module defines the core domain entities for the question subsystem.
A question's answer structure is a tagged variant: multiple choice carries
its own options, true/false only records which of the two is correct. The
canonical option list is produced from the variant when needed.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union
import uuid

TRUE_LABEL = "True"
FALSE_LABEL = "False"


class QuestionType(enum.Enum):
    """Kinds of auto-gradable question."""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"


class Difficulty(enum.Enum):
    """
    Enum representing the difficulty level of a question.

    Values range from 1 (easiest) to 5 (hardest).
    """
    VERY_EASY = 1
    EASY = 2
    MEDIUM = 3
    HARD = 4
    VERY_HARD = 5


@dataclass(frozen=True)
class Option:
    """One selectable answer of a question."""
    text: str
    is_correct: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "is_correct": self.is_correct}


@dataclass(frozen=True)
class MultipleChoice:
    """Answer structure with author-supplied options."""
    options: Tuple[Option, ...]

    question_type = QuestionType.MULTIPLE_CHOICE


@dataclass(frozen=True)
class TrueFalse:
    """Answer structure with the fixed True/False pair."""
    correct_is_true: bool

    question_type = QuestionType.TRUE_FALSE


QuestionKind = Union[MultipleChoice, TrueFalse]


def option_list(kind: QuestionKind) -> List[Option]:
    """Map a question kind to its ordered option list."""
    if isinstance(kind, TrueFalse):
        return [
            Option(TRUE_LABEL, kind.correct_is_true),
            Option(FALSE_LABEL, not kind.correct_is_true),
        ]
    return list(kind.options)


def kind_from_options(question_type: QuestionType, options: List[Option]) -> QuestionKind:
    """Build the variant for a question type from an option list."""
    if question_type == QuestionType.TRUE_FALSE:
        return TrueFalse(correct_is_true=bool(options and options[0].is_correct))
    return MultipleChoice(options=tuple(options))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Question:
    """
    Represents a gradable question owned by a quiz.

    Attributes:
        id: Unique identifier for the question
        quiz_id: The quiz that owns the question
        text: The question text
        kind: Answer structure (MultipleChoice or TrueFalse)
        points: Weight of the question in the quiz score
        difficulty: The difficulty level of the question
        order: 1-based position within the quiz
        explanation: Optional explanation shown after completion
        created_at: When the question was created
        updated_at: When the question was last updated
    """
    id: str
    quiz_id: str
    text: str
    kind: QuestionKind
    points: int = 10
    difficulty: Difficulty = Difficulty.EASY
    order: int = 1
    explanation: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def new_id(cls) -> str:
        return str(uuid.uuid4())

    @property
    def question_type(self) -> QuestionType:
        return self.kind.question_type

    @property
    def options(self) -> List[Option]:
        return option_list(self.kind)

    @property
    def correct_indices(self) -> FrozenSet[int]:
        """Indices of the options marked as correct."""
        return frozenset(i for i, option in enumerate(self.options) if option.is_correct)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the question to a dictionary.

        Returns:
            Dictionary representation of the question
        """
        return {
            'id': self.id,
            'quiz_id': self.quiz_id,
            'text': self.text,
            'question_type': self.question_type.value,
            'options': [option.to_dict() for option in self.options],
            'explanation': self.explanation,
            'points': self.points,
            'difficulty': self.difficulty.value,
            'order': self.order,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        """
        Create a Question from a dictionary.

        Args:
            data: Dictionary containing question data

        Returns:
            A Question instance
        """
        question_type = QuestionType(data.get('question_type', QuestionType.MULTIPLE_CHOICE.value))
        options = [
            Option(text=item.get('text', ''), is_correct=bool(item.get('is_correct', False)))
            for item in data.get('options', [])
        ]

        created_at = data.get('created_at')
        updated_at = data.get('updated_at')
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        if isinstance(updated_at, str):
            updated_at = datetime.fromisoformat(updated_at)

        return cls(
            id=data['id'],
            quiz_id=data['quiz_id'],
            text=data['text'],
            kind=kind_from_options(question_type, options),
            points=int(data.get('points', 10)),
            difficulty=Difficulty(int(data.get('difficulty', Difficulty.EASY.value))),
            order=int(data.get('order', 1)),
            explanation=data.get('explanation'),
            created_at=created_at or _utcnow(),
            updated_at=updated_at or _utcnow(),
        )
