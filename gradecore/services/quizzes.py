"""
Quiz Service

Orchestrates quiz authoring and delivery over the repositories: quiz
configuration, question authoring with the structure lock, and the
start/submit flow of an attempt.
"""

import random
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from gradecore.common.clock import Clock, SystemClock
from gradecore.common.error_handling import AttemptLimitReachedError, NotFoundError
from gradecore.common.logger import app_logger, log_execution_time
from gradecore.config import Settings, settings as default_settings
from gradecore.domain.questions import Question, QuestionBank, QuestionRepository
from gradecore.domain.quizzes import (
    QuizAttempt,
    QuizAttemptRepository,
    QuizDefinition,
    QuizRepository,
    apply_quiz_update,
    can_attempt,
    ensure_question_editable,
    ensure_structure_editable,
    present_questions,
    summarize_quiz,
    validate_quiz,
)
from gradecore.domain.scoring import QuizScore, build_attempt_feedback, score_quiz_attempt
from gradecore.domain.submissions import SubmissionTracker

logger = app_logger.getChild("services.quizzes")


@dataclass
class AttemptOutcome:
    """What a student gets back after submitting an attempt."""
    attempt: QuizAttempt
    score: QuizScore
    feedback: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt": self.attempt.to_dict(),
            "score": self.score.to_dict(),
            "feedback": self.feedback,
        }


class QuizService:
    """Quiz authoring and attempt delivery."""

    def __init__(
        self,
        quizzes: QuizRepository,
        questions: QuestionRepository,
        attempts: QuizAttemptRepository,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.quizzes = quizzes
        self.attempts = attempts
        self.clock = clock or SystemClock()
        self.config = config or default_settings
        self.rng = rng
        self.bank = QuestionBank(questions, self.clock)
        self.tracker = SubmissionTracker(self.clock)

    # --- Quizzes ---

    async def get_quiz(self, quiz_id: str) -> QuizDefinition:
        """Load a quiz together with its ordered questions."""
        quiz = await self.quizzes.get_by_id(quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz", quiz_id)
        return replace(quiz, questions=await self.bank.list_for_quiz(quiz_id))

    @log_execution_time(logger)
    async def create_quiz(self, data: Mapping[str, Any]) -> QuizDefinition:
        quiz = validate_quiz(data, now=self.clock.now())
        await self.quizzes.save(quiz)
        logger.info(f"Created {quiz.quiz_type.value} quiz {quiz.id} for subject {quiz.subject_id}")
        return quiz

    @log_execution_time(logger)
    async def update_quiz(self, quiz_id: str, changes: Mapping[str, Any]) -> QuizDefinition:
        quiz = await self.get_quiz(quiz_id)
        updated = apply_quiz_update(quiz, changes, now=self.clock.now())
        await self.quizzes.save(updated)
        logger.info(f"Updated quiz {quiz_id}")
        return updated

    @log_execution_time(logger)
    async def delete_quiz(self, quiz_id: str) -> bool:
        """Delete a quiz with its questions and attempts."""
        await self.get_quiz(quiz_id)
        attempts = await self.attempts.delete_by_quiz(quiz_id)
        questions = await self.bank.delete_for_quiz(quiz_id)
        deleted = await self.quizzes.delete(quiz_id)
        logger.info(f"Deleted quiz {quiz_id} with {questions} question(s) and {attempts} attempt(s)")
        return deleted

    async def list_quizzes(self, subject_id: str) -> List[Dict[str, Any]]:
        summaries = []
        for quiz in await self.quizzes.find_by_subject(subject_id):
            questions = await self.bank.list_for_quiz(quiz.id)
            summaries.append(summarize_quiz(replace(quiz, questions=questions)))
        return summaries

    # --- Questions ---

    async def _ensure_editable(self, quiz: QuizDefinition, operation: str) -> None:
        attempt_count = await self.attempts.count_by_quiz(quiz.id)
        ensure_structure_editable(
            quiz,
            attempt_count,
            locked=self.config.LOCK_QUIZ_STRUCTURE_AFTER_ATTEMPTS,
            operation=operation,
        )

    async def add_question(self, quiz_id: str, data: Mapping[str, Any]) -> Question:
        quiz = await self.get_quiz(quiz_id)
        await self._ensure_editable(quiz, "add_question")
        return await self.bank.add(quiz_id, data)

    async def update_question(self, question_id: str, data: Mapping[str, Any]) -> Question:
        current = await self.bank.get(question_id)
        quiz = await self.get_quiz(current.quiz_id)
        ensure_question_editable(
            quiz,
            current,
            self.bank.revise(current, data),
            await self.attempts.count_by_quiz(quiz.id),
            locked=self.config.LOCK_QUIZ_STRUCTURE_AFTER_ATTEMPTS,
        )
        return await self.bank.update(question_id, data)

    async def remove_question(self, question_id: str) -> List[Question]:
        question = await self.bank.get(question_id)
        quiz = await self.get_quiz(question.quiz_id)
        await self._ensure_editable(quiz, "remove_question")
        return await self.bank.remove(question_id)

    async def move_question(self, quiz_id: str, from_index: int, to_index: int) -> List[Question]:
        quiz = await self.get_quiz(quiz_id)
        await self._ensure_editable(quiz, "reorder_questions")
        return await self.bank.move(quiz_id, from_index, to_index)

    # --- Attempts ---

    async def _gate(self, quiz: QuizDefinition, student_id: str) -> List[QuizAttempt]:
        history = await self.attempts.find_by_quiz_and_student(quiz.id, student_id)
        if not can_attempt(quiz, history):
            logger.warning(f"Student {student_id} may not attempt quiz {quiz.id}")
            raise AttemptLimitReachedError(quiz.id, student_id, len(history))
        return history

    async def start_attempt(self, quiz_id: str, student_id: str) -> List[Question]:
        """Check the student may attempt the quiz and return the questions to show."""
        quiz = await self.get_quiz(quiz_id)
        await self._gate(quiz, student_id)
        return present_questions(quiz, self.rng)

    @log_execution_time(logger)
    async def submit_attempt(
        self,
        quiz_id: str,
        student_id: str,
        answers: Mapping[str, Iterable[int]],
    ) -> AttemptOutcome:
        """Score a complete answer set and record it as the student's next attempt."""
        quiz = await self.get_quiz(quiz_id)
        history = await self._gate(quiz, student_id)

        answers = {qid: list(indices) for qid, indices in answers.items()}
        score = score_quiz_attempt(quiz, answers)
        attempt = self.tracker.record_attempt(quiz, student_id, answers, score, history)
        await self.attempts.save(attempt)

        return AttemptOutcome(
            attempt=attempt,
            score=score,
            feedback=build_attempt_feedback(quiz, answers),
        )
