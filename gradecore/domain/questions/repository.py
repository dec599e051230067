"""
Question Repository Module

Storage contract for the questions of a quiz. Implementations return
questions of one quiz sorted by order, ties broken by id.
"""

import abc
from typing import List, Optional

from .model import Question


class QuestionRepository(abc.ABC):
    """Abstract base class for question storage."""

    @abc.abstractmethod
    async def get_by_id(self, question_id: str) -> Optional[Question]:
        """Return the question, or None when it does not exist."""
        pass

    @abc.abstractmethod
    async def save(self, question: Question) -> Question:
        """Insert or replace a question keyed by its id."""
        pass

    @abc.abstractmethod
    async def save_all(self, questions: List[Question]) -> List[Question]:
        """
        Insert or replace several questions together.

        The bank calls this after renumbering, so every question of the
        quiz lands with its new position.
        """
        pass

    @abc.abstractmethod
    async def delete(self, question_id: str) -> bool:
        """Remove one question; False when there was nothing to remove."""
        pass

    @abc.abstractmethod
    async def find_by_quiz(self, quiz_id: str) -> List[Question]:
        pass

    @abc.abstractmethod
    async def delete_by_quiz(self, quiz_id: str) -> int:
        """Remove every question of a quiz and return how many went."""
        pass
