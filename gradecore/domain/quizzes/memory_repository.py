"""
Memory Quiz Repository Module

In-memory implementations of the quiz and quiz attempt repositories for
development and testing purposes.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from .model import QuizAttempt, QuizDefinition
from .repository import QuizAttemptRepository, QuizRepository

logger = logging.getLogger(__name__)


class MemoryQuizRepository(QuizRepository):
    """In-memory implementation of the QuizRepository."""

    def __init__(self, initial_data: Optional[List[QuizDefinition]] = None):
        self._quizzes: Dict[str, QuizDefinition] = {}

        for quiz in initial_data or []:
            self._quizzes[quiz.id] = replace(quiz, questions=[])

    async def get_by_id(self, quiz_id: str) -> Optional[QuizDefinition]:
        return self._quizzes.get(quiz_id)

    async def save(self, quiz: QuizDefinition) -> QuizDefinition:
        self._quizzes[quiz.id] = replace(quiz, questions=[])
        return quiz

    async def delete(self, quiz_id: str) -> bool:
        return self._quizzes.pop(quiz_id, None) is not None

    async def find_by_subject(self, subject_id: str) -> List[QuizDefinition]:
        result = [quiz for quiz in self._quizzes.values() if quiz.subject_id == subject_id]
        return sorted(result, key=lambda q: (q.created_at, q.id))


class MemoryQuizAttemptRepository(QuizAttemptRepository):
    """In-memory implementation of the QuizAttemptRepository."""

    def __init__(self, initial_data: Optional[List[QuizAttempt]] = None):
        self._attempts: Dict[str, QuizAttempt] = {}

        for attempt in initial_data or []:
            self._attempts[attempt.id] = attempt

    async def get_by_id(self, attempt_id: str) -> Optional[QuizAttempt]:
        return self._attempts.get(attempt_id)

    async def save(self, attempt: QuizAttempt) -> QuizAttempt:
        self._attempts[attempt.id] = attempt
        return attempt

    async def find_by_quiz_and_student(self, quiz_id: str, student_id: str) -> List[QuizAttempt]:
        result = [
            attempt for attempt in self._attempts.values()
            if attempt.quiz_id == quiz_id and attempt.student_id == student_id
        ]
        return sorted(result, key=lambda a: a.attempt_number)

    async def count_by_quiz(self, quiz_id: str) -> int:
        return sum(1 for attempt in self._attempts.values() if attempt.quiz_id == quiz_id)

    async def delete_by_quiz(self, quiz_id: str) -> int:
        doomed = [aid for aid, attempt in self._attempts.items() if attempt.quiz_id == quiz_id]
        for attempt_id in doomed:
            del self._attempts[attempt_id]
        logger.debug(f"Deleted {len(doomed)} attempt(s) of quiz {quiz_id}")
        return len(doomed)
