"""
Scoring Engine

Pure computation of quiz results and score bounds. A question counts as
correct only when the selected options are exactly its correct options;
there is no partial credit.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping

from gradecore.common.error_handling import (
    IncompleteAnswersError,
    ScoreOutOfRangeError,
    ValidationError,
)
from gradecore.domain.assessments.model import AssessmentDefinition
from gradecore.domain.questions.model import Question
from gradecore.domain.quizzes.model import QuizDefinition

Answers = Mapping[str, Iterable[int]]


@dataclass(frozen=True)
class QuizScore:
    """Outcome of scoring one quiz attempt."""
    raw_score: int
    total_points: int
    percent: int
    passed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_score": self.raw_score,
            "total_points": self.total_points,
            "percent": self.percent,
            "passed": self.passed,
        }


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def selected_indices(question: Question, selected: Iterable[int]) -> FrozenSet[int]:
    """
    Normalise a selection for a question.

    Raises:
        ValidationError: an index is not a position in the question's options
    """
    size = len(question.options)
    indices = list(selected)
    invalid = [i for i in indices if isinstance(i, bool) or not isinstance(i, int) or not 0 <= i < size]
    if invalid:
        raise ValidationError.for_field(
            f"answers.{question.id}",
            f"Option indices {invalid} do not exist; question has {size} options",
            "index_out_of_range",
        )
    return frozenset(indices)


def is_answer_correct(question: Question, selected: Iterable[int]) -> bool:
    """All-or-nothing correctness of one answer."""
    return selected_indices(question, selected) == question.correct_indices


def _selections(quiz: QuizDefinition, answers: Answers) -> Dict[str, FrozenSet[int]]:
    by_id = {question.id: question for question in quiz.questions}

    unknown = [qid for qid in answers if qid not in by_id]
    if unknown:
        raise ValidationError(
            f"Answers reference questions outside quiz {quiz.id}",
            errors=[
                {"field": f"answers.{qid}", "message": "Unknown question", "type": "unknown_question"}
                for qid in unknown
            ],
        )

    return {qid: selected_indices(by_id[qid], selected) for qid, selected in answers.items()}


def score_quiz_attempt(quiz: QuizDefinition, answers: Answers) -> QuizScore:
    """
    Score a complete answer set.

    Raises:
        ValidationError: the quiz has no questions, or answers are malformed
        IncompleteAnswersError: some question has no answer
    """
    if not quiz.questions:
        raise ValidationError.for_field(
            "questions", f"Quiz {quiz.id} has no questions and cannot be scored", "empty_quiz"
        )

    selections = _selections(quiz, answers)
    missing = [question.id for question in quiz.questions if question.id not in selections]
    if missing:
        raise IncompleteAnswersError(quiz.id, missing)

    total = quiz.total_points
    raw = sum(
        question.points for question in quiz.questions
        if selections[question.id] == question.correct_indices
    )
    percent = round_half_up(Decimal(raw) * 100 / Decimal(total))

    return QuizScore(
        raw_score=raw,
        total_points=total,
        percent=percent,
        passed=percent >= quiz.passing_score_percent,
    )


def validate_assessment_score(assessment: AssessmentDefinition, score: float) -> float:
    """
    Check a manual score against the assessment's scale.

    Raises:
        ScoreOutOfRangeError: score is outside 0..total_points
    """
    if isinstance(score, bool) or not isinstance(score, (int, float)) or not 0 <= score <= assessment.total_points:
        raise ScoreOutOfRangeError(score, assessment.total_points, context={"assessment_id": assessment.id})
    return score


def build_attempt_feedback(quiz: QuizDefinition, answers: Answers) -> List[Dict[str, Any]]:
    """
    Per-question feedback for a scored attempt.

    Correct options and explanations are only revealed when the quiz shows
    answers after completion.
    """
    selections = _selections(quiz, answers)
    feedback = []

    for question in sorted(quiz.questions, key=lambda q: (q.order, q.id)):
        selected = selections.get(question.id, frozenset())
        correct = selected == question.correct_indices
        item = {
            "question_id": question.id,
            "selected": sorted(selected),
            "correct": correct,
            "points_awarded": question.points if correct else 0,
        }
        if quiz.show_answers_after_completion:
            item["correct_indices"] = sorted(question.correct_indices)
            item["explanation"] = question.explanation
        feedback.append(item)

    return feedback
