"""
Question domain module for GradeCore.

This module contains the domain model, validation rules and repositories
for the questions that make up a quiz.
"""

from .model import (
    Difficulty,
    MultipleChoice,
    Option,
    Question,
    QuestionKind,
    QuestionType,
    TrueFalse,
    option_list,
)
from .bank import QuestionBank, next_order, place, renumber, reorder, validate_question
from .repository import QuestionRepository
from .memory_repository import MemoryQuestionRepository

__all__ = [
    'Difficulty',
    'MultipleChoice',
    'Option',
    'Question',
    'QuestionKind',
    'QuestionType',
    'TrueFalse',
    'option_list',
    'QuestionBank',
    'next_order',
    'place',
    'renumber',
    'reorder',
    'validate_question',
    'QuestionRepository',
    'MemoryQuestionRepository',
]
