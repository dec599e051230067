"""
Quiz Repository Module

This module defines the repository interfaces for quizzes and the attempts
students make on them.
"""

import abc
from typing import List, Optional

from .model import QuizAttempt, QuizDefinition


class QuizRepository(abc.ABC):
    """
    Abstract base class for quiz repositories.

    Quizzes are stored without their questions; questions live in the
    QuestionRepository and are attached by the caller.
    """

    @abc.abstractmethod
    async def get_by_id(self, quiz_id: str) -> Optional[QuizDefinition]:
        """
        Get a quiz by its ID.

        Args:
            quiz_id: The ID of the quiz to retrieve

        Returns:
            The QuizDefinition if found (with an empty question list), None otherwise
        """
        pass

    @abc.abstractmethod
    async def save(self, quiz: QuizDefinition) -> QuizDefinition:
        """Create or update a quiz."""
        pass

    @abc.abstractmethod
    async def delete(self, quiz_id: str) -> bool:
        """
        Delete a quiz by its ID.

        Returns:
            True if the quiz was deleted, False otherwise
        """
        pass

    @abc.abstractmethod
    async def find_by_subject(self, subject_id: str) -> List[QuizDefinition]:
        """Quizzes of a subject, oldest first."""
        pass


class QuizAttemptRepository(abc.ABC):
    """Abstract base class for quiz attempt repositories."""

    @abc.abstractmethod
    async def get_by_id(self, attempt_id: str) -> Optional[QuizAttempt]:
        pass

    @abc.abstractmethod
    async def save(self, attempt: QuizAttempt) -> QuizAttempt:
        pass

    @abc.abstractmethod
    async def find_by_quiz_and_student(self, quiz_id: str, student_id: str) -> List[QuizAttempt]:
        """
        Attempt history of one student on one quiz.

        Returns:
            Attempts sorted by attempt number
        """
        pass

    @abc.abstractmethod
    async def count_by_quiz(self, quiz_id: str) -> int:
        """Number of attempts recorded on a quiz by any student."""
        pass

    @abc.abstractmethod
    async def delete_by_quiz(self, quiz_id: str) -> int:
        """
        Delete every attempt of a quiz.

        Returns:
            Number of deleted attempts
        """
        pass
