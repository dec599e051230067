"""
In-memory question storage, used by create_memory_services and the tests.
"""

import logging
from typing import Dict, List, Optional

from .model import Question
from .repository import QuestionRepository

logger = logging.getLogger(__name__)


class MemoryQuestionRepository(QuestionRepository):
    """QuestionRepository over a dict keyed by question id."""

    def __init__(self, initial_data: Optional[List[Question]] = None):
        self._questions: Dict[str, Question] = {q.id: q for q in initial_data or []}

    async def get_by_id(self, question_id: str) -> Optional[Question]:
        return self._questions.get(question_id)

    async def save(self, question: Question) -> Question:
        self._questions[question.id] = question
        return question

    async def save_all(self, questions: List[Question]) -> List[Question]:
        self._questions.update((q.id, q) for q in questions)
        return list(questions)

    async def delete(self, question_id: str) -> bool:
        return self._questions.pop(question_id, None) is not None

    async def find_by_quiz(self, quiz_id: str) -> List[Question]:
        found = [q for q in self._questions.values() if q.quiz_id == quiz_id]
        return sorted(found, key=lambda q: (q.order, q.id))

    async def delete_by_quiz(self, quiz_id: str) -> int:
        doomed = [qid for qid, q in self._questions.items() if q.quiz_id == quiz_id]
        for question_id in doomed:
            del self._questions[question_id]
        logger.debug(f"Deleted {len(doomed)} question(s) of quiz {quiz_id}")
        return len(doomed)
